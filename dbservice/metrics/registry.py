from prometheus_client import Counter, Histogram

DB_STATEMENT_TOTAL = Counter(
    "dbservice_db_statement_total",
    "Number of SQL statements executed by dbservice accessors",
    ["table", "op_type", "status"],
)

DB_STATEMENT_LATENCY_SECONDS = Histogram(
    "dbservice_db_statement_latency_seconds",
    "Latency of SQL statements executed by dbservice accessors",
    ["table", "op_type"],
)
