from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

def init_db(app):
    """Initialize the database with the app"""
    db.init_app(app)

    from cloudpipe.db import models  # noqa: F401

    # Create tables if they don't exist
    with app.app_context():
        db.create_all()
