"""
Celery Beat schedule configuration.

The only periodic job is the nightly re-evaluation of every active
repository, which catches contributions that arrived without a webhook.
"""

from celery.schedules import crontab

from badge_core.config import get_settings


def get_beat_schedule():
    """Beat schedule; the batch hour comes from BATCH_AWARD_HOUR (UTC)."""
    settings = get_settings()
    return {
        "award-all-repositories-nightly": {
            "task": "workers.tasks.awarding.award_all_repositories",
            "schedule": crontab(hour=settings.batch_award_hour, minute=0),
            "args": [],
            "kwargs": {"force_recheck": False},
            "options": {"queue": "awarding"},
        },
    }


def apply_beat_schedule(celery_app):
    celery_app.conf.beat_schedule = get_beat_schedule()
    celery_app.conf.beat_schedule_filename = "celerybeat-schedule"
