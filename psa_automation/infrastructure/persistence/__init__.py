"""Persistence adapters for definitions, stats and execution history."""
