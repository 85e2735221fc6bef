#!/usr/bin/env python3
"""
Run the brief-aggregation HTTP API with the development server.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from brief_aggregation.config import get_config, load_config_from_yaml
from brief_aggregation.core.factories import create_components
from brief_aggregation.logger import setup_logger
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.web import create_app


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Run the brief-aggregation API")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--db", help="SQLite database path")
    parser.add_argument("--scheduler", action="store_true", help="Start background jobs")
    args = parser.parse_args()

    config = load_config_from_yaml(args.config) if args.config else get_config()
    setup_logger(level=config.logging.level, log_file=config.logging.file_path)

    db_manager = DatabaseManager(args.db) if args.db else DatabaseManager(db_config=config.database)
    db_manager.init_db()
    components = create_components(db_manager, config=config)

    app = create_app(
        components=components,
        start_scheduler=args.scheduler or config.web.start_scheduler,
    )
    app.run(host=config.web.host, port=config.web.port, debug=config.web.debug, use_reloader=False)


if __name__ == "__main__":
    main()
