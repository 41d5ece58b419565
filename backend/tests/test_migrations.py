from argparse import Namespace
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import Column, Integer, MetaData, Table, create_engine, inspect

MIGRATIONS = Path(__file__).resolve().parents[1] / "migrations"


def alembic_config(db_path: Path) -> Config:
    # 等价于 alembic -x db_url=... ；不读 alembic.ini，避免 fileConfig 改写测试期间的日志配置
    cfg = Config(cmd_opts=Namespace(x=[f"db_url=sqlite+aiosqlite:///{db_path}"]))
    cfg.set_main_option("script_location", str(MIGRATIONS))
    return cfg


def test_upgrade_creates_ledger_tables(tmp_path):
    db_path = tmp_path / "migrated.db"
    command.upgrade(alembic_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    inspector = inspect(engine)
    assert {"asset_positions", "transactions"} <= set(inspector.get_table_names())
    assert "version" in {c["name"] for c in inspector.get_columns("asset_positions")}
    uniques = inspector.get_unique_constraints("asset_positions")
    assert [u["column_names"] for u in uniques] == [["user_id", "asset_type", "symbol"]]
    engine.dispose()


def test_models_match_migrated_schema_and_foreign_tables_are_left_alone(tmp_path):
    db_path = tmp_path / "shared.db"
    cfg = alembic_config(db_path)
    command.upgrade(cfg, "head")

    # 同库里另一个应用的表不应出现在 autogenerate 的差异里
    engine = create_engine(f"sqlite:///{db_path}")
    other = MetaData()
    Table("other_app_jobs", other, Column("id", Integer, primary_key=True))
    other.create_all(engine)
    engine.dispose()

    # 有差异时 command.check 会抛出 AutogenerateDiffsDetected
    command.check(cfg)


def test_downgrade_drops_ledger_tables(tmp_path):
    db_path = tmp_path / "migrated.db"
    cfg = alembic_config(db_path)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    tables = set(inspect(engine).get_table_names())
    engine.dispose()
    assert not tables & {"asset_positions", "transactions"}
