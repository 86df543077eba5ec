SCHEMA_SQL = r"""
-- Documents: one row per document, grouped by collection
CREATE TABLE IF NOT EXISTS documents (
  collection TEXT NOT NULL,
  id TEXT NOT NULL,
  data TEXT NOT NULL,                    -- JSON object
  created_at TEXT NOT NULL,              -- ISO datetime (UTC)
  updated_at TEXT NOT NULL,              -- ISO datetime (UTC)
  PRIMARY KEY (collection, id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, created_at);

-- Named counters (roll number sequences etc.)
CREATE TABLE IF NOT EXISTS counters (
  name TEXT PRIMARY KEY,
  value INTEGER NOT NULL DEFAULT 0,
  updated_at TEXT NOT NULL
);
"""

COLLECTIONS = (
    "students",
    "courses",
    "enquiries",
    "transactions",
    "sales",
    "materials",
    "inventory",
)
