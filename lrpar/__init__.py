"""LR parsing over supplied grammar and state tables, with CPCT+ syntax error recovery."""

__version__ = "0.1.0"

__all__ = ["builder", "cpctplus", "dijkstra", "errors", "lex_api", "parser", "repairs", "tables"]