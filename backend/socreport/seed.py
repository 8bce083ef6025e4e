from sqlalchemy.orm import Session
from .db import SessionLocal, Base, engine
from .predefined import PREDEFINED_TEMPLATES
from . import crud, schemas


SYSTEM_USER = "system"

Base.metadata.create_all(bind=engine)


def seed_predefined(db: Session) -> int:
    """Insert built-in templates that are not stored yet. Returns how many were added."""
    created = 0
    for predefined in PREDEFINED_TEMPLATES:
        if crud.get_template_by_name(db, predefined.name):
            continue
        payload = schemas.TemplateCreate.model_validate(predefined.template.model_dump())
        crud.create_template(db, SYSTEM_USER, payload, is_predefined=True)
        created += 1
    return created


def run():
    db: Session = SessionLocal()
    try:
        created = seed_predefined(db)
        print(f"Seeded {created} predefined template(s).")
    finally:
        db.close()

if __name__ == "__main__":
    run()
