from __future__ import annotations

from os.path import abspath, join

# [PATHS]
###############################################################################
ROOT_DIR = abspath(join(__file__, "../../../.."))
PROJECT_DIR = join(ROOT_DIR, "PHARMABASE")
SETTING_PATH = join(PROJECT_DIR, "setup", "settings")
RSC_PATH = join(PROJECT_DIR, "resources")
DATA_PATH = join(RSC_PATH, "database")
SOURCES_PATH = join(DATA_PATH, "sources")
LOGS_PATH = join(RSC_PATH, "logs")
DATABASE_FILENAME = "drugbank.db"
SOURCE_FILENAME = "full database.xml"

###############################################################################
SERVER_CONFIGURATION_FILE = join(SETTING_PATH, "server_configurations.json")

# [ENDPOINTS]
###############################################################################
DRUGS_API_URL = "/drugs"

# [DATABASE TABLES]
###############################################################################
DRUGS_TABLE = "drugs"
DRUGS_FTS_TABLE = "drugs_fts"
DRUGS_FTS_DOCSIZE_TABLE = "drugs_fts_docsize"
DRUG_TARGETS_TABLE = "drug_targets"
DRUG_CATEGORIES_TABLE = "drug_categories"
DRUG_CARRIERS_TABLE = "drug_carriers"
DRUG_TRANSPORTERS_TABLE = "drug_transporters"
DRUG_SALTS_TABLE = "drug_salts"

# [DRUGBANK XML]
###############################################################################
DRUG_TAG = "drug"
TOP_LEVEL_MARKER_ATTRIBUTE = "type"
ATTRIBUTE_PREFIX = "@"
TEXT_KEY = "#text"

DRUG_SCALAR_FIELDS = {
    "name": "name",
    "description": "description",
    "cas_number": "cas-number",
    "unii": "unii",
    "state": "state",
    "indication": "indication",
    "pharmacodynamics": "pharmacodynamics",
    "mechanism_of_action": "mechanism-of-action",
    "toxicity": "toxicity",
    "absorption": "absorption",
    "metabolism": "metabolism",
    "half_life": "half-life",
    "protein_binding": "protein-binding",
    "route_of_elimination": "route-of-elimination",
    "volume_of_distribution": "volume-of-distribution",
    "clearance": "clearance",
}
DRUG_MASS_FIELDS = {
    "average_mass": "average-mass",
    "monoisotopic_mass": "monoisotopic-mass",
}

PRODUCT_FIELDS = {
    "name": "name",
    "labeller": "labeller",
    "ndc_id": "ndc-id",
    "ndc_product_code": "ndc-product-code",
    "dpd_id": "dpd-id",
    "started_marketing_on": "started-marketing-on",
    "ended_marketing_on": "ended-marketing-on",
    "dosage_form": "dosage-form",
    "strength": "strength",
    "route": "route",
    "fda_application_number": "fda-application-number",
    "generic": "generic",
    "over_the_counter": "over-the-counter",
    "approved": "approved",
    "country": "country",
    "source": "source",
}

# [DATA SERIALIZATION]
###############################################################################
DRUG_JSON_COLUMNS = [
    "all_ids",
    "groups",
    "categories",
    "synonyms",
    "calculated_properties",
    "external_identifiers",
    "drug_interactions",
    "food_interactions",
    "targets",
    "enzymes",
    "carriers",
    "transporters",
    "salts",
    "pathways",
    "products",
    "atc_codes",
]
DRUG_JSON_MAPPING_COLUMNS = {"calculated_properties", "external_identifiers"}

DRUG_SUMMARY_FIELDS = [
    "drugbank_id",
    "name",
    "description",
    "groups",
    "cas_number",
    "state",
]

DRUG_DETAIL_FIELDS = [
    "drugbank_id",
    "all_ids",
    "name",
    "description",
    "drug_type",
    "cas_number",
    "unii",
    "state",
    "groups",
    "categories",
    "synonyms",
    "indication",
    "pharmacodynamics",
    "mechanism_of_action",
    "toxicity",
    "absorption",
    "metabolism",
    "half_life",
    "half_life_hours",
    "protein_binding",
    "route_of_elimination",
    "volume_of_distribution",
    "clearance",
    "average_mass",
    "monoisotopic_mass",
    "calculated_properties",
    "external_identifiers",
    "atc_codes",
    "drug_interactions",
    "food_interactions",
    "targets",
    "enzymes",
    "carriers",
    "transporters",
]

STRUCTURE_IDENTIFIER_PROPERTIES = {
    "SMILES": "smiles",
    "InChI": "inchi",
    "InChIKey": "inchi_key",
}

# [QUERY ENGINE]
###############################################################################
ENTITY_KINDS = ("target", "category", "carrier", "transporter")
ATC_PREFIX_LENGTH = 5
SIMILARITY_NOTE = (
    "Similarity based on shared targets (50%), categories (30%) "
    "and ATC codes (20%)"
)
STRUCTURE_SEARCH_NOTE = (
    "This is an exact substring match over calculated properties. For true "
    "structure similarity use a chemical fingerprinting toolkit."
)

# [RELEASES]
###############################################################################
RELEASE_REPOSITORY = "openpharma-org/drugbank-mcp-server"
RELEASE_ASSET_NAME = "drugbank.db"
GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_DOWNLOAD_BASE_URL = "https://github.com"
