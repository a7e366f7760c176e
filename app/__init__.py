"""Yoga studio management service.

Layers: ``core`` (config, logging, errors, auth), ``domain`` (pydantic
models), ``infrastructure`` (MongoDB repositories), ``services`` (studio
rules) and ``api`` (FastAPI routers).
"""
