from __future__ import annotations

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from PHARMABASE.server.utils.constants import (
    DRUG_CARRIERS_TABLE,
    DRUG_CATEGORIES_TABLE,
    DRUG_SALTS_TABLE,
    DRUG_TARGETS_TABLE,
    DRUG_TRANSPORTERS_TABLE,
    DRUGS_FTS_TABLE,
    DRUGS_TABLE,
)

Base = declarative_base()


###############################################################################
class Drug(Base):
    __tablename__ = DRUGS_TABLE
    drugbank_id = Column(String, primary_key=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    drug_type = Column(String)
    cas_number = Column(String)
    unii = Column(String)
    state = Column(String)
    indication = Column(Text)
    pharmacodynamics = Column(Text)
    mechanism_of_action = Column(Text)
    toxicity = Column(Text)
    absorption = Column(Text)
    metabolism = Column(Text)
    half_life = Column(Text)
    half_life_hours = Column(Float)
    protein_binding = Column(Text)
    route_of_elimination = Column(Text)
    volume_of_distribution = Column(Text)
    clearance = Column(Text)
    average_mass = Column(Float)
    monoisotopic_mass = Column(Float)
    all_ids = Column(Text)
    groups = Column(Text)
    categories = Column(Text)
    synonyms = Column(Text)
    calculated_properties = Column(Text)
    external_identifiers = Column(Text)
    drug_interactions = Column(Text)
    food_interactions = Column(Text)
    targets = Column(Text)
    enzymes = Column(Text)
    carriers = Column(Text)
    transporters = Column(Text)
    salts = Column(Text)
    pathways = Column(Text)
    products = Column(Text)
    atc_codes = Column(Text)


###############################################################################
class DrugTarget(Base):
    __tablename__ = DRUG_TARGETS_TABLE
    id = Column(Integer, primary_key=True, autoincrement=True)
    drug_id = Column(String, ForeignKey(f"{DRUGS_TABLE}.drugbank_id"), nullable=False)
    entity_id = Column(String)
    name = Column(Text, nullable=False)
    organism = Column(String)
    known_action = Column(String)
    actions = Column(Text)


###############################################################################
class DrugCarrier(Base):
    __tablename__ = DRUG_CARRIERS_TABLE
    id = Column(Integer, primary_key=True, autoincrement=True)
    drug_id = Column(String, ForeignKey(f"{DRUGS_TABLE}.drugbank_id"), nullable=False)
    entity_id = Column(String)
    name = Column(Text, nullable=False)
    organism = Column(String)
    known_action = Column(String)
    actions = Column(Text)


###############################################################################
class DrugTransporter(Base):
    __tablename__ = DRUG_TRANSPORTERS_TABLE
    id = Column(Integer, primary_key=True, autoincrement=True)
    drug_id = Column(String, ForeignKey(f"{DRUGS_TABLE}.drugbank_id"), nullable=False)
    entity_id = Column(String)
    name = Column(Text, nullable=False)
    organism = Column(String)
    known_action = Column(String)
    actions = Column(Text)


###############################################################################
class DrugCategory(Base):
    __tablename__ = DRUG_CATEGORIES_TABLE
    id = Column(Integer, primary_key=True, autoincrement=True)
    drug_id = Column(String, ForeignKey(f"{DRUGS_TABLE}.drugbank_id"), nullable=False)
    category = Column(Text, nullable=False)
    mesh_id = Column(String)


###############################################################################
class DrugSalt(Base):
    __tablename__ = DRUG_SALTS_TABLE
    id = Column(Integer, primary_key=True, autoincrement=True)
    drug_id = Column(String, ForeignKey(f"{DRUGS_TABLE}.drugbank_id"), nullable=False)
    salt_id = Column(String)
    name = Column(Text)
    unii = Column(String)
    cas_number = Column(String)
    inchikey = Column(String)
    average_mass = Column(Float)


# name column of each searchable entity table
ENTITY_TABLES = {
    "target": (DRUG_TARGETS_TABLE, "name"),
    "category": (DRUG_CATEGORIES_TABLE, "category"),
    "carrier": (DRUG_CARRIERS_TABLE, "name"),
    "transporter": (DRUG_TRANSPORTERS_TABLE, "name"),
}

# pre-built release stores name the target column target_name
ENTITY_COLUMN_ALIASES = {
    DRUG_TARGETS_TABLE: ("target_name",),
}


# -----------------------------------------------------------------------------
def entity_column_candidates(table: str, column: str) -> tuple[str, ...]:
    return (column, *ENTITY_COLUMN_ALIASES.get(table, ()))

# [FULL-TEXT INDEX]
###############################################################################
FTS_COLUMNS = ("drugbank_id", "name", "description", "indication")

FTS_TABLE_STATEMENT = (
    f"CREATE VIRTUAL TABLE IF NOT EXISTS {DRUGS_FTS_TABLE} USING fts5("
    f"{', '.join(FTS_COLUMNS)}, content={DRUGS_TABLE}, content_rowid=rowid)"
)

FTS_TRIGGER_STATEMENTS = (
    f"""
    CREATE TRIGGER IF NOT EXISTS {DRUGS_TABLE}_ai AFTER INSERT ON {DRUGS_TABLE} BEGIN
        INSERT INTO {DRUGS_FTS_TABLE}(rowid, drugbank_id, name, description, indication)
        VALUES (new.rowid, new.drugbank_id, new.name, new.description, new.indication);
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS {DRUGS_TABLE}_ad AFTER DELETE ON {DRUGS_TABLE} BEGIN
        INSERT INTO {DRUGS_FTS_TABLE}({DRUGS_FTS_TABLE}, rowid, drugbank_id, name, description, indication)
        VALUES ('delete', old.rowid, old.drugbank_id, old.name, old.description, old.indication);
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS {DRUGS_TABLE}_au AFTER UPDATE ON {DRUGS_TABLE} BEGIN
        INSERT INTO {DRUGS_FTS_TABLE}({DRUGS_FTS_TABLE}, rowid, drugbank_id, name, description, indication)
        VALUES ('delete', old.rowid, old.drugbank_id, old.name, old.description, old.indication);
        INSERT INTO {DRUGS_FTS_TABLE}(rowid, drugbank_id, name, description, indication)
        VALUES (new.rowid, new.drugbank_id, new.name, new.description, new.indication);
    END
    """,
)

# [SECONDARY INDEXES]
###############################################################################
HALF_LIFE_INDEX_STATEMENT = (
    f"CREATE INDEX IF NOT EXISTS idx_{DRUGS_TABLE}_half_life_hours "
    f"ON {DRUGS_TABLE}(half_life_hours)"
)

INDEX_STATEMENTS = (
    f"CREATE INDEX IF NOT EXISTS idx_{DRUGS_TABLE}_name ON {DRUGS_TABLE}(name COLLATE NOCASE)",
    f"CREATE INDEX IF NOT EXISTS idx_{DRUGS_TABLE}_indication ON {DRUGS_TABLE}(indication)",
    f"CREATE INDEX IF NOT EXISTS idx_{DRUGS_TABLE}_cas ON {DRUGS_TABLE}(cas_number)",
    f"CREATE INDEX IF NOT EXISTS idx_{DRUGS_TABLE}_unii ON {DRUGS_TABLE}(unii)",
    HALF_LIFE_INDEX_STATEMENT,
    *(
        statement
        for table, column in ENTITY_TABLES.values()
        for statement in (
            f"CREATE INDEX IF NOT EXISTS idx_{table}_{column} "
            f"ON {table}({column} COLLATE NOCASE)",
            f"CREATE INDEX IF NOT EXISTS idx_{table}_drug_id ON {table}(drug_id)",
        )
    ),
    f"CREATE INDEX IF NOT EXISTS idx_{DRUG_SALTS_TABLE}_name "
    f"ON {DRUG_SALTS_TABLE}(name COLLATE NOCASE)",
    f"CREATE INDEX IF NOT EXISTS idx_{DRUG_SALTS_TABLE}_drug_id "
    f"ON {DRUG_SALTS_TABLE}(drug_id)",
)

SCHEMA_STATEMENTS = (FTS_TABLE_STATEMENT, *FTS_TRIGGER_STATEMENTS, *INDEX_STATEMENTS)

CHILD_TABLES = (
    DRUG_TARGETS_TABLE,
    DRUG_CATEGORIES_TABLE,
    DRUG_CARRIERS_TABLE,
    DRUG_TRANSPORTERS_TABLE,
    DRUG_SALTS_TABLE,
)
