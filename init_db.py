"""
Initialize database and create tables
Run this script once to set up your database, then create the first
super admin with ``flask super-admin create``.
"""

from app import create_app
from extensions import db


def init_db(config_name='development'):
    """Initialize the database"""
    app = create_app(config_name)

    with app.app_context():
        print("Creating database tables...")
        db.create_all()
        print("Database tables created.")
        print(f"Database location: {app.config['SQLALCHEMY_DATABASE_URI']}")

        print("\nTables created:")
        for table in db.metadata.sorted_tables:
            print(f"  - {table.name}")


if __name__ == '__main__':
    init_db()
