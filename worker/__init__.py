"""Celery worker for background billing jobs."""
