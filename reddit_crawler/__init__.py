"""Crawler that ingests subreddits, posts and authors into a relational store."""

__version__ = "0.1.0"
