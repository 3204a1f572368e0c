import argparse
import json
import logging
from typing import Optional

from algorithms import MathTools
from config import YamlConfig
from db import (
    UserRepository,
    SetRepository,
    TargetRepository,
    AdherenceRepository,
)
from insights_service import InsightsService
from localization import SUPPORTED_LANGUAGES
from seed_sample_data import seed


def show_insights(
    user_id: int,
    db_path: Optional[str],
    yaml_path: str,
    language: Optional[str] = None,
    as_json: bool = False,
) -> None:
    config = YamlConfig(yaml_path)
    settings = config.settings()
    path = db_path or settings.db_path
    service = InsightsService(
        UserRepository(path),
        SetRepository(path),
        TargetRepository(path),
        AdherenceRepository(path),
        language=settings.language,
        tz=config.tzinfo(),
    )
    insights = service.compute_insights(user_id, language=language)
    if as_json:
        print(json.dumps([i.to_dict() for i in insights], indent=2, ensure_ascii=False))
        return
    if not insights:
        print("No insights")
        return
    for item in insights:
        print(f"[{item.severity.value}] {item.title}: {item.description}")


def demo_data(db_path: Optional[str], yaml_path: str) -> None:
    """Populate the database with a demo user."""
    path = db_path or YamlConfig(yaml_path).settings().db_path
    uid = seed(path)
    print(f"Demo user {uid} inserted")


def serve(db_path: Optional[str], yaml_path: str, host: str, port: int) -> None:
    import uvicorn
    from rest_api import InsightsAPI

    uvicorn.run(InsightsAPI(db_path=db_path, yaml_path=yaml_path).app, host=host, port=port)


def main() -> None:
    parser = argparse.ArgumentParser(description="Training insights commands")
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ins = sub.add_parser("insights")
    ins.add_argument("--user", type=int, required=True)
    ins.add_argument("--db", default=None)
    ins.add_argument("--lang", choices=SUPPORTED_LANGUAGES, default=None)
    ins.add_argument("--json", action="store_true")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=None)

    est = sub.add_parser("estimate")
    est.add_argument("--weight", type=float, required=True)
    est.add_argument("--reps", type=int, required=True)

    srv = sub.add_parser("serve")
    srv.add_argument("--db", default=None)
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    level = YamlConfig(args.yaml).settings().log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "insights":
        show_insights(args.user, args.db, args.yaml, args.lang, args.json)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "estimate":
        print(f"Estimated 1RM: {MathTools.epley_1rm(args.weight, args.reps)}")
    elif args.cmd == "serve":
        serve(args.db, args.yaml, args.host, args.port)


if __name__ == "__main__":
    main()
