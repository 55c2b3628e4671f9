"""Celery worker and beat schedule for Shree's periodic sweeps."""

from src.worker.celery_app import celery_app

__all__ = ["celery_app"]
