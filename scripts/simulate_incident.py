#!/usr/bin/env python3
"""
Incident risk demo: synthetic telemetry through the full engine pipeline.

Generates one event per minute per (service, route) stream, degrades the
tail of one stream (higher latency, 5xx responses, timeouts), then runs
ETL, training, live inference, preventive alerts and a backtest in-process.

Usage:
    python scripts/simulate_incident.py
    python scripts/simulate_incident.py --minutes 240 --degraded 60 --epochs 200
"""

import argparse
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from incident_risk.engine import IncidentRiskEngine
from incident_risk.models import TelemetryEvent
from incident_risk.utils.logging import configure_logging

STREAMS = [
    ("payments", "/v1/charge"),
    ("payments", "/v1/refund"),
    ("alerts", "/v1/alerts"),
]


def generate_stream(
    service: str,
    route: str,
    start: datetime,
    minutes: int,
    degraded: int,
    rng: random.Random,
) -> list[TelemetryEvent]:
    """One event per minute; the last ``degraded`` minutes misbehave."""
    events = []
    for i in range(minutes):
        unhealthy = i >= minutes - degraded
        events.append(
            TelemetryEvent(
                timestamp=start + timedelta(minutes=i),
                service=service,
                route=route,
                status_code=rng.choice([500, 503, 200]) if unhealthy else rng.choice([200, 200, 201, 404]),
                latency_ms=rng.uniform(900, 2500) if unhealthy else rng.uniform(40, 180),
                memory_mb=rng.uniform(700, 950) if unhealthy else rng.uniform(250, 400),
                cpu_pct=rng.uniform(75, 99) if unhealthy else rng.uniform(10, 45),
                retries=rng.randint(1, 4) if unhealthy else rng.randint(0, 1),
                timeout=unhealthy and rng.random() < 0.4,
            )
        )
    return events


def main():
    parser = argparse.ArgumentParser(description="Run the incident risk pipeline on synthetic telemetry")
    parser.add_argument("--minutes", type=int, default=180, help="Minutes of telemetry per stream")
    parser.add_argument("--degraded", type=int, default=45, help="Degraded minutes at the end of the first stream")
    parser.add_argument("--bucket-minutes", type=int, default=10)
    parser.add_argument("--horizon-hours", type=int, default=1)
    parser.add_argument("--epochs", type=int, default=100)
    parser.add_argument("--learning-rate", type=float, default=0.1)
    parser.add_argument("--threshold", type=float, default=0.5, help="Alert threshold")
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()

    configure_logging()
    rng = random.Random(args.seed)
    start = datetime.now(timezone.utc) - timedelta(minutes=args.minutes)

    engine = IncidentRiskEngine()
    for index, (service, route) in enumerate(STREAMS):
        degraded = args.degraded if index == 0 else 0
        engine.ingest(generate_stream(service, route, start, args.minutes, degraded, rng))

    print("\n" + "=" * 60)
    print("Incident Risk Simulation")
    print("=" * 60)

    etl = engine.run_etl(bucket_minutes=args.bucket_minutes, lookback_hours=168)
    print(f"\n[1/4] ETL: {etl.generated_rows} feature rows")

    trained = engine.train(
        horizon_hours=args.horizon_hours,
        incident_threshold=0.2,
        learning_rate=args.learning_rate,
        epochs=args.epochs,
    )
    print(f"[2/4] Trained on {trained.trained_rows} rows ({trained.positives} positives)")

    print("[3/4] Latest risk per stream:")
    for prediction in engine.infer_latest():
        factors = ", ".join(f"{f.feature.value}={f.contribution:+.3f}" for f in prediction.top_factors)
        print(f"  {prediction.service}{prediction.route}: {prediction.risk_score:.3f}  [{factors}]")

    alerts = engine.evaluate_alerts(args.threshold)
    print(f"  {len(alerts)} preventive alert(s) at threshold {args.threshold}")

    metrics = engine.backtest(horizon_hours=args.horizon_hours, incident_threshold=0.2, top_k=5)
    print(
        f"[4/4] Backtest: auc={metrics.auc:.3f} precision@5={metrics.precision_at_k:.3f} "
        f"recall={metrics.recall_incidents:.3f} support={metrics.support}"
    )
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
