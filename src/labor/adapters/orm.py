import logging
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
)

from labor.domain.model import Adresse, CustomUser, Gesundheitsamt, Labor, TestTyp

logger = logging.getLogger(__name__)

metadata = MetaData()

# Nested value objects are kept as JSON documents inside the row
labore = Table(
    "labore",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("version", Integer, nullable=False, default=0),
    Column("name", String(255), nullable=False, index=True),
    Column("adresse", JSON, nullable=False),
    Column("telefonnummer", String(64)),
    Column("fax", String(15)),
    Column("labor_tests", JSON, nullable=False),
    Column("testet_auf_corona", Boolean, nullable=False, default=False),
    Column("zustaendiges_gesundheitsamt", JSON),
    Column("username", String(255)),
    Column("erzeugt", DateTime(timezone=True)),
    Column("aktualisiert", DateTime(timezone=True)),
)

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(255), unique=True, nullable=False),
    Column("password", String(255), nullable=False),
    Column("authorities", JSON, nullable=False),
)


def create_tables(engine):
    logger.info("Creating tables")
    metadata.create_all(engine)


def adresse_to_document(adresse: Adresse) -> Dict[str, Any]:
    return {
        "strasse": adresse.strasse,
        "hausnummer": adresse.hausnummer,
        "plz": adresse.plz,
        "ort": adresse.ort,
    }


def adresse_from_document(document: Dict[str, Any]) -> Adresse:
    return Adresse(
        strasse=document.get("strasse"),
        hausnummer=document.get("hausnummer"),
        plz=document.get("plz"),
        ort=document.get("ort"),
    )


def labor_to_row(labor: Labor) -> Dict[str, Any]:
    """Column values for a Labor. id, version and timestamps are set by the repository."""
    gesundheitsamt = labor.zustaendiges_gesundheitsamt
    return {
        "name": labor.name,
        "adresse": adresse_to_document(labor.adresse),
        "telefonnummer": labor.telefonnummer,
        "fax": labor.fax,
        "labor_tests": [test_typ.value for test_typ in labor.labor_tests],
        "testet_auf_corona": labor.testet_auf_corona,
        "zustaendiges_gesundheitsamt": {
            "bundesland": gesundheitsamt.bundesland,
            "landkreis": gesundheitsamt.landkreis,
            "adresse": adresse_to_document(gesundheitsamt.adresse),
        },
        "username": labor.username,
    }


def row_to_labor(row) -> Labor:
    gesundheitsamt = row.zustaendiges_gesundheitsamt or {}
    return Labor(
        id=row.id,
        version=row.version,
        name=row.name,
        adresse=adresse_from_document(row.adresse),
        telefonnummer=row.telefonnummer,
        fax=row.fax,
        labor_tests=tuple(TestTyp(code) for code in row.labor_tests),
        testet_auf_corona=row.testet_auf_corona,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            bundesland=gesundheitsamt.get("bundesland"),
            landkreis=gesundheitsamt.get("landkreis"),
            adresse=adresse_from_document(gesundheitsamt.get("adresse", {})),
        ),
        username=row.username,
        erzeugt=row.erzeugt,
        aktualisiert=row.aktualisiert,
    )


def row_to_user(row) -> CustomUser:
    return CustomUser(
        id=row.id,
        username=row.username,
        password=row.password,
        authorities=tuple(row.authorities),
    )
