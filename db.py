import sqlite3
import os
import json
from datetime import datetime, timezone

DB_FILE = os.getenv("HISTORY_DB") or os.path.join(os.path.dirname(os.path.realpath(__file__)), "htmlcheck_history.db")

def get_db():
    conn = sqlite3.connect(DB_FILE)
    conn.row_factory = sqlite3.Row
    return conn

def init_db():
    conn = get_db()
    c = conn.cursor()

    # Tabla: Ejecuciones de validación
    c.execute('''
    CREATE TABLE IF NOT EXISTS validation_runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ts TEXT NOT NULL,
        source TEXT DEFAULT 'web', -- web, api
        filename TEXT,
        valid INTEGER NOT NULL,
        reason TEXT,
        message TEXT,
        unclosed TEXT, -- JSON list ["body", "html"]
        size INTEGER DEFAULT 0
    )
    ''')

    # Tabla: Auditoría
    c.execute('''
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        ts TEXT NOT NULL,
        event TEXT NOT NULL,
        actor TEXT,
        scope TEXT,
        details TEXT -- JSON
    )
    ''')

    # Indices
    c.execute('CREATE INDEX IF NOT EXISTS idx_runs_ts ON validation_runs(ts)')
    c.execute('CREATE INDEX IF NOT EXISTS idx_runs_reason ON validation_runs(reason)')
    c.execute('CREATE INDEX IF NOT EXISTS idx_audit_ts ON audit_log(ts)')

    conn.commit()
    conn.close()

def _iso(dt: datetime) -> str:
    if dt is None: return None
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

def _row_to_run(row):
    run = dict(row)
    run["valid"] = bool(run["valid"])
    try:
        run["unclosed"] = json.loads(run.get("unclosed") or "[]")
    except ValueError:
        run["unclosed"] = []
    return run

# --- Histórico de validaciones ---

def record_run(verdict, source="web", filename=None, size=0):
    """Guarda el resultado de una validación. Devuelve el id o None."""
    try:
        conn = get_db()
        cur = conn.execute(
            """INSERT INTO validation_runs (ts, source, filename, valid, reason, message, unclosed, size)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                _iso(datetime.now(timezone.utc)),
                str(source),
                filename,
                1 if verdict.valid else 0,
                verdict.reason,
                verdict.message,
                json.dumps(verdict.unclosed, ensure_ascii=False),
                int(size or 0),
            )
        )
        conn.commit()
        run_id = cur.lastrowid
        conn.close()
        return run_id
    except Exception as e:
        print(f"DB Record Run Error: {e}")
        return None

def get_run(run_id):
    try:
        conn = get_db()
        row = conn.execute("SELECT * FROM validation_runs WHERE id = ?", (run_id,)).fetchone()
        conn.close()
        return _row_to_run(row) if row else None
    except Exception:
        return None

def get_recent_runs(limit=50):
    try:
        conn = get_db()
        rows = conn.execute(
            "SELECT * FROM validation_runs ORDER BY id DESC LIMIT ?", (int(limit),)
        ).fetchall()
        conn.close()
        return [_row_to_run(r) for r in rows]
    except Exception:
        return []

def get_run_stats():
    """Totales: {'total': N, 'valid': N, 'invalid': N, 'by_reason': {...}}"""
    stats = {"total": 0, "valid": 0, "invalid": 0, "by_reason": {}}
    try:
        conn = get_db()
        rows = conn.execute(
            "SELECT valid, reason, COUNT(*) as count FROM validation_runs GROUP BY valid, reason"
        ).fetchall()
        conn.close()
    except Exception:
        return stats
    for r in rows:
        stats["total"] += r["count"]
        if r["valid"]:
            stats["valid"] += r["count"]
        else:
            stats["invalid"] += r["count"]
            stats["by_reason"][r["reason"]] = stats["by_reason"].get(r["reason"], 0) + r["count"]
    return stats

def delete_all_runs():
    try:
        conn = get_db()
        conn.execute("DELETE FROM validation_runs")
        conn.commit()
        conn.close()
        return True
    except Exception:
        return False

# --- Auditoría ---

def db_audit(event, actor, scope, details=None):
    try:
        conn = get_db()
        conn.execute(
            "INSERT INTO audit_log (ts, event, actor, scope, details) VALUES (?, ?, ?, ?, ?)",
            (
                _iso(datetime.now(timezone.utc)),
                str(event),
                str(actor),
                str(scope),
                json.dumps(details or {}, ensure_ascii=False)
            )
        )
        conn.commit()
        conn.close()
    except Exception as e:
        print(f"DB Log Error: {e}")

def get_audit_events(limit=100):
    try:
        conn = get_db()
        rows = conn.execute("SELECT * FROM audit_log ORDER BY id DESC LIMIT ?", (int(limit),)).fetchall()
        conn.close()
        return [dict(r) for r in rows]
    except Exception:
        return []
