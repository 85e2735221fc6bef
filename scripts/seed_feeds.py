#!/usr/bin/env python3
"""
Seed the database with sample feed sources and a demo subscriber.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from brief_aggregation.core.categorizer import FeedCategorizer, favicon_url_for
from brief_aggregation.models import FeedSourceCreate, SourceType
from brief_aggregation.storage.database import get_db
from brief_aggregation.storage.repositories import FeedSourceRepository, SubscriptionRepository

DEMO_SUBSCRIBER = "demo"

SAMPLE_SOURCES = [
    {"url": "https://news.ycombinator.com/rss", "name": "Hacker News", "type": SourceType.RSS},
    {"url": "https://techcrunch.com/feed/", "name": "TechCrunch", "type": SourceType.RSS},
    {"url": "https://feeds.bbci.co.uk/news/world/rss.xml", "name": "BBC World News", "type": SourceType.RSS},
    {"url": "https://www.reddit.com/r/programming", "name": "r/programming", "type": SourceType.REDDIT},
    {"url": "https://www.youtube.com/@veritasium", "name": "Veritasium", "type": SourceType.YOUTUBE},
]


def main() -> None:
    """Seed the database with sample sources."""
    import argparse

    parser = argparse.ArgumentParser(description="Seed database with sample feed sources")
    parser.add_argument("--subscriber", default=DEMO_SUBSCRIBER, help="Subscriber to subscribe")
    args = parser.parse_args()

    categorizer = FeedCategorizer()

    with get_db() as session:
        sources = FeedSourceRepository(session)
        subscriptions = SubscriptionRepository(session)

        for sample in SAMPLE_SOURCES:
            source = sources.get_by_url(sample["url"])
            if source:
                print(f"Source already exists: {sample['name']}")
            else:
                category = categorizer.categorize(sample["name"], sample["url"])
                source = sources.create(
                    FeedSourceCreate(
                        url=sample["url"],
                        name=sample["name"],
                        type=sample["type"],
                        category=category.category,
                        favicon_url=None if sample["type"] == SourceType.YOUTUBE else favicon_url_for(sample["url"]),
                    )
                )
                print(f"Added source: {sample['name']} ({category.category})")

            subscriptions.subscribe(args.subscriber, source.id)

        print(f"\nTotal sources in database: {sources.count()}")
        print(f"Subscriber '{args.subscriber}' follows {len(subscriptions.list_for_subscriber(args.subscriber))} sources")


if __name__ == "__main__":
    main()
