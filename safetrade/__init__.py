"""
SafeTrade Fraud Guard — Source Package
======================================

Rule-based fraud screening for buyer/seller chat on the SafeTrade
motorcycle marketplace:
    - main.py          : FastAPI application, fraud-detection and send endpoints
    - auth.py          : API key authentication dependency
    - config.py        : Environment-driven settings (runtime mode, limits)
    - detector.py      : Fraud scoring engine, risk tiers, blocking policy
    - patterns.py      : Declarative scam pattern table
    - matchers.py      : Keyword, regex and co-occurrence matcher primitives
    - fraud_client.py  : Fail-open fraud check client and audit logging
    - store.py         : Thread-safe in-memory conversation/message store
    - models.py        : Pydantic request/response schemas
"""
