import os
import tempfile
from pathlib import Path

# The web app picks its database and reporting settings when first imported;
# point it at a scratch SQLite file with default settings before any test
# module imports it.
_DB_DIR = Path(tempfile.mkdtemp(prefix="homeschool-tests-"))
for _key in (
    "DATABASE_URL",
    "DATABASE_URL_DEV",
    "DATABASE_URL_PREVIEW",
    "APP_ENV",
    "NODE_ENV",
    "CONTEXT",
    "NETLIFY_CONTEXT",
    "HOMESCHOOL_CORE_SUBJECTS",
    "HOMESCHOOL_FISCAL_START",
    "HOMESCHOOL_CREDIT_SCALE",
    "HOMESCHOOL_GOALS",
):
    os.environ.pop(_key, None)
os.environ["HOMESCHOOL_SQLITE"] = str(_DB_DIR / "homeschool-test.db")
