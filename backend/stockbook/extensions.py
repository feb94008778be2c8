# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def dispose_engine(app) -> None:
    """Release pooled connections held by the app's engine."""
    with app.app_context():
        db.engine.dispose()
