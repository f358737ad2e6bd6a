from pathlib import Path

from ..settings import Settings

SAMPLE_CATALOG = Path(__file__).resolve().parents[2] / "data" / "catalog.json"


class DevelopmentSettings(Settings):
    debug: bool = True
    database_url: str = "duckdb://./data/canteen_planner_dev.duckdb"
    catalog_seed_path: str = str(SAMPLE_CATALOG)
