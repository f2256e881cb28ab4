"""
Celery wiring for background jobs.

Tasks run inside a Flask app context so they share the app's database
session, config and clock with the request path. The beat schedule is read
from ``Config.CELERY``.
"""
from celery import Celery, Task


def celery_init_app(app) -> Celery:
    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(app.name, task_cls=FlaskTask, include=["tasks.janitor"])
    celery_app.config_from_object(app.config["CELERY"])
    celery_app.set_default()
    app.extensions["celery"] = celery_app
    return celery_app
