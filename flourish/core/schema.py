"""SQLite schema for the document store."""

# Collection names
TASK_TEMPLATES = "tasks"
TASK_INSTANCES = "task_details"
PLANT_INSTANCES = "user_plants"
NUTRIENTS = "nutrients"
PLANT_SPECIES = "plants"

COLLECTIONS: tuple[str, ...] = (
    TASK_TEMPLATES,
    TASK_INSTANCES,
    PLANT_INSTANCES,
    NUTRIENTS,
    PLANT_SPECIES,
)

DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    created TEXT NOT NULL,
    updated TEXT NOT NULL,
    data TEXT NOT NULL CHECK (json_valid(data)),
    PRIMARY KEY (collection, id)
)
"""

DOCUMENTS_INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_documents_user "
    "ON documents (collection, json_extract(data, '$.user_id'))",
    "CREATE INDEX IF NOT EXISTS idx_documents_scheduled "
    "ON documents (collection, json_extract(data, '$.scheduled_at'))",
)
