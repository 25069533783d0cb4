"""
Prometheus metrics for charge processing.

Tracks:
- Charges created by payment method and final status
- Charge amounts
- Charge processing duration
- Idempotent replays (plain lookup or lost creation race)
- Strategy failures by payment method and error type
"""
from prometheus_client import Counter, Histogram

charges_total = Counter(
    "charges_total",
    "Total number of charges processed",
    ["payment_method", "status"],
)

charge_processing_duration_seconds = Histogram(
    "charge_processing_duration_seconds",
    "Charge processing duration in seconds",
    ["payment_method"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

charge_amount_cents = Histogram(
    "charge_amount_cents",
    "Charge amounts in minor currency units",
    buckets=(100, 500, 1000, 5000, 10000, 50000, 100000, 500000, 1000000),
)

idempotent_replays_total = Counter(
    "idempotent_replays_total",
    "Charge requests answered with an existing charge",
    ["source"],  # lookup, conflict
)

strategy_failures_total = Counter(
    "strategy_failures_total",
    "Payment strategy executions that raised",
    ["payment_method", "error_type"],
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_charge(
        payment_method: str, status: str, amount_cents: int, duration_seconds: float
    ) -> None:
        """Record a charge that went through strategy execution."""
        charges_total.labels(payment_method=payment_method, status=status).inc()
        charge_amount_cents.observe(amount_cents)
        charge_processing_duration_seconds.labels(payment_method=payment_method).observe(
            duration_seconds
        )

    @staticmethod
    def record_idempotent_replay(source: str) -> None:
        """Record a request resolved to an already existing charge."""
        idempotent_replays_total.labels(source=source).inc()

    @staticmethod
    def record_strategy_failure(payment_method: str, error_type: str) -> None:
        """Record a failed strategy execution."""
        strategy_failures_total.labels(
            payment_method=payment_method, error_type=error_type
        ).inc()


# Export singleton instance
metrics = MetricsCollector()
