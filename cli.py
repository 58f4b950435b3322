import argparse
import asyncio
import datetime
import os
import shutil

from algorithms import DerivedMetrics
from analysis_service import AnalysisEngine
from coaching_service import CoachingService
from export_service import ExportService
from log_config import setup_logging
from rest_api import EvolutionAPI
from seed_sample_data import seed


async def _load(api: EvolutionAPI):
    exercises = await api.exercise_store.load()
    goals = await api.goal_store.load()
    profile = await api.profile_store.load(api.settings.get_text("user_name", ""))
    return exercises, goals, profile


def export_report(
    db_path: str, yaml_path: str, fmt: str, timeframe: str, output_dir: str = "."
) -> str:
    api = EvolutionAPI(db_path, yaml_path)
    exercises, goals, profile = asyncio.run(_load(api))
    exercises = DerivedMetrics.scale_for_timeframe(exercises, timeframe)
    if fmt == "csv":
        data = ExportService.report_csv(exercises, goals, profile, timeframe)
    else:
        data = ExportService.report_html(exercises, goals, profile, timeframe)
    out_path = os.path.join(output_dir, ExportService.report_filename(fmt))
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(data)
    return out_path


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, yaml_path: str) -> None:
    """Populate the database with the sample exercises if empty."""
    api = EvolutionAPI(db_path, yaml_path)
    if asyncio.run(seed(api)):
        print("Demo data inserted")
    else:
        print("Database already contains exercises")


def coaching_tip(db_path: str, yaml_path: str, deep: bool = False) -> str:
    api = EvolutionAPI(db_path, yaml_path)
    exercises = asyncio.run(api.exercise_store.load())
    if deep:
        return CoachingService.deep_analysis(exercises)
    return CoachingService.short_tip(exercises)


def analysis_table(
    db_path: str, yaml_path: str, category: str, window: str, sort: str
) -> str:
    api = EvolutionAPI(db_path, yaml_path)
    exercises = asyncio.run(api.exercise_store.load())
    engine = AnalysisEngine(window, api._date_parser())
    engine.select_category(category)
    if sort != engine.sort_key:
        engine.sort_by(sort)
    now = datetime.datetime.now()
    return engine.export_csv(exercises, now) or engine.insight(exercises, now)


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--log-format", choices=["text", "json"], default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="evolution.db")
    exp.add_argument("--yaml", default="settings.yaml")
    exp.add_argument("--fmt", choices=["csv", "html"], default="csv")
    exp.add_argument("--timeframe", choices=["WEEK", "MONTH"], default="WEEK")
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="evolution.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="evolution.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="evolution.db")
    demo.add_argument("--yaml", default="settings.yaml")

    tip = sub.add_parser("tip")
    tip.add_argument("--db", default="evolution.db")
    tip.add_argument("--yaml", default="settings.yaml")
    tip.add_argument("--deep", action="store_true")

    ana = sub.add_parser("analysis")
    ana.add_argument("--db", default="evolution.db")
    ana.add_argument("--yaml", default="settings.yaml")
    ana.add_argument("--category", default="ALL")
    ana.add_argument("--window", choices=["WEEK", "MONTH", "YEAR"], default="MONTH")
    ana.add_argument("--sort", choices=list(AnalysisEngine.SORT_KEYS), default="name")

    args = parser.parse_args()
    setup_logging(args.log_format)

    if args.cmd == "export":
        print(export_report(args.db, args.yaml, args.fmt, args.timeframe, args.out))
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "tip":
        print(coaching_tip(args.db, args.yaml, args.deep))
    elif args.cmd == "analysis":
        print(analysis_table(args.db, args.yaml, args.category, args.window, args.sort))


if __name__ == "__main__":
    main()
