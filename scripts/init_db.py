import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "backend"))

from sqlalchemy import text
from studio.auth import issue_token
from studio.config import settings
from studio.database import SessionLocal, engine
from studio.models.tables import Base, Clients


def main():
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("DB OK:", db.execute(text("SELECT 1")).scalar())
        print("Clients:", db.query(Clients).count())
    finally:
        db.close()

    print(f"Admin token ({settings.admin_email}):")
    print(issue_token(settings.admin_email))


if __name__ == "__main__":
    main()
