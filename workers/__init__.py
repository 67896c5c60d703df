"""
Celery background workers.

Usage:
    celery -A workers worker -Q awarding --loglevel=info
    celery -A workers worker -Q sync --loglevel=info
    celery -A workers beat --loglevel=info
"""

from workers.celery_app import celery_app

__all__ = ["celery_app"]
