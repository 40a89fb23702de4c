import logging

from app.db.init_db import init_schema, seed_initial_data
from app.db.session import SessionLocal, engine


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    init_schema(engine)
    db = SessionLocal()
    try:
        admin = seed_initial_data(db)
        if admin:
            print(f"Admin ativo: {admin.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
