"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

The worker process is started with ``celery -A foodtruck.celery_worker``
and reads its settings from the environment; the API reconfigures the
same app from the settings it was created with (``configure_celery``).
"""

from celery import Celery

from foodtruck.core.config import Settings, get_settings


def configure_celery(app: Celery, settings: Settings) -> Celery:
    """Point ``app`` at the broker and execution mode of ``settings``."""
    app.conf.update(
        broker_url=settings.redis_url,
        result_backend=settings.redis_url,

        # Run tasks inline (tests, single-process development)
        task_always_eager=settings.celery_task_always_eager,
        task_eager_propagates=True,
    )
    return app


def create_celery_app(settings: Settings) -> Celery:
    app = Celery('foodtruck_worker', include=['foodtruck.tasks'])

    app.conf.update(
        task_serializer='json',
        accept_content=['json'],
        result_serializer='json',
        timezone='UTC',
        enable_utc=True,

        worker_prefetch_multiplier=1,  # One export at a time per worker process
        worker_concurrency=4,

        result_expires=3600,

        task_acks_late=True,
        task_reject_on_worker_lost=True,

        broker_connection_retry_on_startup=True,
    )
    return configure_celery(app, settings)


celery_app = create_celery_app(get_settings())


if __name__ == '__main__':
    celery_app.start()
