#!/usr/bin/env python3
"""
Reload the labor database with development data.

Drops and recreates the tables, then inserts five laboratories and the users
admin (all roles) and alpha1..alpha3 (ROLE_LABOR), all with password "p".

Usage:
    python scripts/populate_db.py [--database-uri URI]
"""

import argparse
import logging
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

sys.path.append(str(Path(__file__).parent.parent / "src"))

import config  # noqa: E402
from labor.adapters import orm  # noqa: E402
from labor.domain.model import Adresse, CustomUser, Gesundheitsamt, Labor, Rolle, TestTyp  # noqa: E402
from labor.service_layer.unit_of_work import SqlAlchemyUnitOfWork  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PASSWORD = "p"

LABORE = [
    Labor(
        id="00000000-0000-0000-0000-000000000000",
        name="Chicken",
        adresse=Adresse("Erstestrasse", 3, "12345", "München"),
        telefonnummer="12345678",
        fax="87654321",
        labor_tests=(TestTyp.Antikoerper, TestTyp.Blut),
        testet_auf_corona=True,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            "Bayern", "München", Adresse("Weißwurststrasse", 1, "12345", "München")
        ),
    ),
    Labor(
        id="00000000-0000-0000-0000-000000000001",
        name="Flora",
        adresse=Adresse("Blumenstrasse", 8, "12335", "Karlsruhe"),
        telefonnummer="12354678",
        fax="87645321",
        labor_tests=(TestTyp.Antikoerper, TestTyp.Blut),
        testet_auf_corona=False,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            "Baden-Württemberg", "Karlsruhe", Adresse("Höpfnerstrasse", 2, "76133", "Karlsruhe")
        ),
    ),
    Labor(
        id="00000000-0000-0000-0000-000000000002",
        name="Blessing",
        adresse=Adresse("Zweitestrasse", 2, "12345", "Nürnberg"),
        telefonnummer="78315682",
        fax="12345678",
        labor_tests=(TestTyp.Antikoerper,),
        testet_auf_corona=True,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            "Bayern", "Nürnberg", Adresse("Nürnstrasse", 1, "12345", "Nürnberg")
        ),
    ),
    Labor(
        id="00000000-0000-0000-0000-000000000003",
        name="Katze",
        adresse=Adresse("Katzenstrasse", 3, "78315", "Radolfzell"),
        telefonnummer="84623950",
        fax="87654312",
        labor_tests=(TestTyp.Antikoerper, TestTyp.Blut),
        testet_auf_corona=True,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            "Baden-Württemberg", "Konstanz", Adresse("Endiviengasse", 1, "78313", "Konstanz")
        ),
    ),
    Labor(
        id="00000000-0000-0000-0000-000000000004",
        name="Elfriede",
        adresse=Adresse("Letztestrasse", 3, "22305", "Hamburg"),
        telefonnummer="12395278",
        fax="87654334",
        labor_tests=(TestTyp.Blut,),
        testet_auf_corona=False,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            "Hamburg", "Hamburg", Adresse("Fischstrasse", 45, "22305", "Hamburg")
        ),
    ),
]

USERS = [
    CustomUser(None, "admin", PASSWORD, (Rolle.ADMIN, Rolle.LABOR, Rolle.ACTUATOR)),
    CustomUser(None, "alpha1", PASSWORD, (Rolle.LABOR,)),
    CustomUser(None, "alpha2", PASSWORD, (Rolle.LABOR,)),
    CustomUser(None, "alpha3", PASSWORD, (Rolle.LABOR,)),
]


def populate(session_factory):
    engine = session_factory.kw["bind"]
    logger.warning("Dropping and recreating the labor tables")
    orm.metadata.drop_all(engine)
    orm.create_tables(engine)

    with SqlAlchemyUnitOfWork(session_factory) as uow:
        for labor in LABORE:
            saved = uow.labore.add(labor)
            logger.info(f"Inserted {saved.name} ({saved.id})")
        for user in USERS:
            result = uow.users.create(user)
            logger.info(f"User {user.username}: {type(result).__name__}")
        uow.commit()


def main():
    parser = argparse.ArgumentParser(description="Reload the labor database with development data")
    parser.add_argument(
        "--database-uri",
        default=None,
        help="SQLAlchemy database URI (default: from DB_* environment variables)",
    )
    args = parser.parse_args()

    uri = args.database_uri or config.get_postgres_uri()
    populate(sessionmaker(bind=create_engine(uri)))
    print(f"Loaded {len(LABORE)} labore and {len(USERS)} users")


if __name__ == "__main__":
    main()
