"""Application layer - ingestion use case, categorizer and labeling."""
