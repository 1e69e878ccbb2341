import pytest
import os
import sys
import tempfile

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# La app crea la BD al importarse: que no sea la del proyecto
os.environ.setdefault("HISTORY_DB", os.path.join(tempfile.gettempdir(), "htmlcheck_test_import.db"))

import db
import app as app_module
from app import app as flask_app

@pytest.fixture
def app(tmp_path):
    flask_app.config.update({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
    })

    original_db = db.DB_FILE
    original_audit = app_module.AUDIT_LOG_FILE
    original_token = app_module.TOKEN_API
    db.DB_FILE = str(tmp_path / "history.db")  # Override db.py's global
    app_module.AUDIT_LOG_FILE = str(tmp_path / "audit-log.jsonl")
    app_module.TOKEN_API = "test-token"
    app_module._rate_hist.clear()

    with flask_app.app_context():
        db.init_db()
        yield flask_app

    db.DB_FILE = original_db
    app_module.AUDIT_LOG_FILE = original_audit
    app_module.TOKEN_API = original_token

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer test-token"}

@pytest.fixture
def test_db():
    """Provides a fresh temp database for DB logic tests without Flask app context."""
    db_fd, db_path = tempfile.mkstemp()
    original_db = db.DB_FILE
    db.DB_FILE = db_path
    db.init_db()

    yield db

    db.DB_FILE = original_db
    os.close(db_fd)
    os.unlink(db_path)

@pytest.fixture
def html_file(tmp_path):
    """Escribe un documento en tmp_path y devuelve su ruta (str)."""
    def _write(content, name="page.html"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write
