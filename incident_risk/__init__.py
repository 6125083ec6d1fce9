"""
Incident Risk Engine.

In-memory telemetry ETL, online logistic-regression incident-risk model,
preventive alerting and backtesting, served over FastAPI.
"""

__version__ = "0.1.0"
