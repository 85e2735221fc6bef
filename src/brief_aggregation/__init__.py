"""
Brief Aggregation - personalized daily digest pipeline.

This package ingests content from RSS feeds, Reddit communities, YouTube
channels and social posts, deduplicates and health-tracks every source, and
assembles ranked daily digests per subscriber.
"""

__version__ = "0.1.0"
