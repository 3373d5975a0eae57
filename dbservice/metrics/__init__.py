from .registry import DB_STATEMENT_LATENCY_SECONDS, DB_STATEMENT_TOTAL

__all__ = ["DB_STATEMENT_TOTAL", "DB_STATEMENT_LATENCY_SECONDS"]
