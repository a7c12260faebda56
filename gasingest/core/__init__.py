"""Core ingestion pipeline: classifier, GitHub client, scraper, orchestrator."""
