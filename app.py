from flask import (
    Flask, render_template_string, request, redirect, url_for,
    flash, jsonify, Blueprint, g
)
from datetime import datetime, timezone
import os
import json
import logging
import threading
import time
from werkzeug.utils import secure_filename
from dotenv import load_dotenv
from filelock import FileLock

import db
from htmlcheck import validate_structure
from htmlcheck.sources import SourceError, UnsupportedFileError, check_path, decode_bytes, parse_extensions


load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger(__name__)


app = Flask(__name__)
# Clave secreta desde .env
app.secret_key = os.getenv('FLASK_SECRET_KEY', 'dev-key-insegura-si-falta-env')

BASE_DIR = os.path.dirname(os.path.realpath(__file__))
AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE") or os.path.join(BASE_DIR, "audit-log.jsonl")

# === Seguridad API / limitación ===
TOKEN_API = os.getenv("TOKEN_API")  # Obligatorio para /api/*
RATE_LIMIT_PER_MIN = int(os.getenv("RATE_LIMIT_PER_MIN", "60"))

# Tamaño máximo de documento (subida o texto pegado)
MAX_CONTENT_BYTES = int(os.getenv("MAX_CONTENT_BYTES", str(2 * 1024 * 1024)))
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_BYTES

# Extensiones aceptadas: ".html,.htm"
ALLOWED_EXTENSIONS = parse_extensions(os.getenv("ALLOWED_EXTENSIONS", ".html,.htm"))

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500

# Memorias en proceso (rate-limit)
_rate_lock = threading.Lock()
_rate_hist = {}  # {token: [timestamps]}

db.init_db()


# =========================
#  Utilidades web
# =========================
def json_response_ok(extra=None):
    payload = {"ok": True}
    if extra:
        payload.update(extra)
    return jsonify(payload)


def json_response_error(message, code=400, extra=None):
    payload = {"ok": False, "error": str(message)}
    if extra:
        payload.update(extra)
    return jsonify(payload), code


def _now_utc():
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _client_ip():
    xff = request.headers.get("X-Forwarded-For", "")
    if xff:
        return xff.split(",")[0].strip()
    return request.remote_addr or "0.0.0.0"


# -------- Auditoría --------
def _audit(event, actor, scope, details=None):
    # actor: 'web/<ip>' | 'api/<ip>'
    rec = {
        "ts": _iso(_now_utc()),
        "event": str(event),
        "actor": str(actor or "unknown"),
        "scope": str(scope or ""),
        "details": details or {}
    }
    try:
        with FileLock(AUDIT_LOG_FILE + ".lock", timeout=5):
            with open(AUDIT_LOG_FILE, "a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    except Exception as e:
        log.warning("No se pudo escribir auditoría: %s", e)
    db.db_audit(event, actor, scope, details)


# =========================
#  Validación (núcleo + registro)
# =========================
def evaluate(content, filename=None, source="web", actor=None):
    """Valida `content`, lo registra en histórico/auditoría y devuelve (verdict, dict)."""
    verdict = validate_structure(content)
    data = verdict.to_dict(content)
    data["run_id"] = db.record_run(verdict, source=source, filename=filename, size=len(content or ""))
    data["filename"] = filename

    if verdict.valid:
        log.info("%s: HTML válido (%s)", source, filename or "texto")
    else:
        log.info("%s: HTML inválido (%s): %s", source, filename or "texto", verdict.reason)
    _audit("validate", actor or f"{source}/{_client_ip()}", filename or "-", {
        "valid": verdict.valid,
        "reason": verdict.reason,
        "size": len(content or ""),
    })
    return verdict, data


def _read_upload(file):
    """FileStorage -> (nombre_seguro, texto). Lanza SourceError."""
    filename = secure_filename(file.filename or "")
    # Se comprueba el nombre original: secure_filename puede vaciarlo
    check_path(file.filename, ALLOWED_EXTENSIONS)
    return filename or file.filename, decode_bytes(file.read())


@app.after_request
def add_security_headers(resp):
    resp.headers["X-Frame-Options"] = "DENY"
    resp.headers["X-Content-Type-Options"] = "nosniff"
    resp.headers["Referrer-Policy"] = "same-origin"
    resp.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    resp.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "object-src 'none'; "
        "frame-ancestors 'none'"
    )
    return resp


@app.errorhandler(413)
def too_large(e):
    if request.path.startswith("/api/"):
        return json_response_error(f"Documento demasiado grande (máx. {MAX_CONTENT_BYTES} bytes)", 413)
    flash(f"Documento demasiado grande (máx. {MAX_CONTENT_BYTES} bytes).", "danger")
    return redirect(url_for("index"))


# =========================
#  Vistas web
# =========================
INDEX_TEMPLATE = """<!doctype html>
<html lang="es">
<head>
  <meta charset="utf-8">
  <title>Validador de estructura HTML</title>
  <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css">
</head>
<body class="container py-4">
  <h1 class="h3 mb-4">Validador de estructura HTML</h1>
  {% for category, message in get_flashed_messages(with_categories=true) %}
    <div class="alert alert-{{ category }}">{{ message }}</div>
  {% endfor %}
  {% if result %}
    {% if result.valid %}
      <div class="alert alert-success" id="verdict">HTML válido{% if result.filename %}: {{ result.filename }}{% endif %}</div>
    {% else %}
      <div class="alert alert-danger" id="verdict">
        <strong>HTML inválido</strong>{% if result.filename %} ({{ result.filename }}){% endif %}: {{ result.message }}
        {% if result.line %}<br>Línea {{ result.line }}, columna {{ result.column }}{% endif %}
        {% if result.tag %}<br><code>{{ result.tag }}</code>{% endif %}
        {% if result.expected %}<br>Se esperaba <code>&lt;/{{ result.expected }}&gt;</code>{% endif %}
        {% if result.unclosed %}
          <ul class="mb-0">
          {% for name in result.unclosed %}<li>&lt;{{ name }}&gt; no se ha cerrado</li>{% endfor %}
          </ul>
        {% endif %}
      </div>
    {% endif %}
  {% endif %}
  <form method="post" enctype="multipart/form-data" class="mb-4">
    <div class="mb-3">
      <label class="form-label" for="file">Fichero ({{ extensions|join(', ') }})</label>
      <input class="form-control" type="file" name="file" id="file">
    </div>
    <div class="mb-3">
      <label class="form-label" for="content">o pega el HTML</label>
      <textarea class="form-control font-monospace" name="content" id="content" rows="10"></textarea>
    </div>
    <button class="btn btn-primary" type="submit">Validar</button>
  </form>
  {% if runs %}
  <h2 class="h5">Últimas validaciones</h2>
  <table class="table table-sm">
    <tr><th>Fecha</th><th>Origen</th><th>Fichero</th><th>Resultado</th></tr>
    {% for run in runs %}
    <tr>
      <td>{{ run.ts }}</td><td>{{ run.source }}</td><td>{{ run.filename or '-' }}</td>
      <td>{% if run.valid %}válido{% else %}{{ run.reason }}{% endif %}</td>
    </tr>
    {% endfor %}
  </table>
  {% endif %}
</body>
</html>
"""


def _render_index(result=None, status=200):
    runs = db.get_recent_runs(limit=10)
    html = render_template_string(INDEX_TEMPLATE, result=result, runs=runs, extensions=ALLOWED_EXTENSIONS)
    return html, status


@app.route("/", methods=["GET", "POST"])
def index():
    if request.method == "GET":
        return _render_index()

    # -------------------- Subida de fichero --------------------
    file = request.files.get("file")
    if file and file.filename:
        try:
            filename, content = _read_upload(file)
        except SourceError as e:
            # Sin veredicto: el documento no se puede evaluar
            _audit("rejected", f"web/{_client_ip()}", file.filename, {"error": str(e)})
            flash(str(e), "danger")
            return redirect(url_for("index"))
        _, result = evaluate(content, filename=filename, source="web")
        return _render_index(result)

    # -------------------- Texto pegado --------------------
    content = request.form.get("content", "")
    if not content:
        flash("Selecciona un fichero o pega el contenido HTML.", "warning")
        return redirect(url_for("index"))
    _, result = evaluate(content, source="web")
    return _render_index(result)


# ========= Observabilidad / util =========
@app.route("/healthz")
def healthz():
    try:
        conn = db.get_db()
        try:
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()
        return jsonify({"status": "ok", "time": _iso(_now_utc())})
    except Exception as e:
        return jsonify({"status": "error", "error": str(e)}), 500


# =========================
#  API (Blueprint)
# =========================
api = Blueprint("api", __name__, url_prefix="/api")


def _request_token():
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip()
    return request.headers.get("X-API-Key")


def _auth_ok():
    if not TOKEN_API:
        return False
    return _request_token() == TOKEN_API


def _rate_ok():
    key = _request_token() or _client_ip()
    now = time.time()
    with _rate_lock:
        hist = [t for t in _rate_hist.get(key, []) if now - t < 60]
        if len(hist) >= RATE_LIMIT_PER_MIN:
            _rate_hist[key] = hist
            return False
        hist.append(now)
        _rate_hist[key] = hist
        return True


@api.before_request
def _api_guard():
    if not _auth_ok():
        _audit("api_unauthorized", f"api/{_client_ip()}", request.path, {"method": request.method})
        return jsonify({"ok": False, "error": "Unauthorized"}), 401
    if not _rate_ok():
        _audit("api_ratelimit", f"api/{_client_ip()}", request.path, {"method": request.method})
        return jsonify({"ok": False, "error": "Rate limit exceeded"}), 429
    # actor para auditoría
    g.api_actor = f"api/{_client_ip()}"


@api.route("/validate", methods=["POST"])
def api_validate():
    """
    Valida un documento.

    JSON: {"content": "<html>...</html>", "filename": "index.html"}
    o multipart con el campo "file". "filename" es opcional en JSON; si se
    envía, debe tener una extensión aceptada.
    """
    file = request.files.get("file")
    try:
        if file and file.filename:
            filename, content = _read_upload(file)
        else:
            data = request.get_json(silent=True)
            if not isinstance(data, dict) or not isinstance(data.get("content"), str):
                return json_response_error("Falta 'content' (texto) o un fichero 'file'.")
            filename = data.get("filename")
            if filename:
                check_path(filename, ALLOWED_EXTENSIONS)
            content = data["content"]
    except SourceError as e:
        _audit("rejected", g.api_actor, request.path, {"error": str(e)})
        code = 415 if isinstance(e, UnsupportedFileError) else 400
        return json_response_error(e, code)

    _, result = evaluate(content, filename=filename, source="api", actor=g.api_actor)
    return json_response_ok({"verdict": result})


@api.route("/history", methods=["GET"])
def api_history():
    try:
        limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
    except ValueError:
        return json_response_error("'limit' debe ser un entero.")
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    return json_response_ok({"runs": db.get_recent_runs(limit=limit)})


@api.route("/history/<int:run_id>", methods=["GET"])
def api_history_run(run_id):
    run = db.get_run(run_id)
    if not run:
        return json_response_error("Ejecución no encontrada", 404)
    return json_response_ok({"run": run})


@api.route("/history", methods=["DELETE"])
def api_history_clear():
    if not db.delete_all_runs():
        return json_response_error("No se pudo vaciar el histórico", 500)
    _audit("history_cleared", g.api_actor, request.path)
    return json_response_ok()


@api.route("/stats", methods=["GET"])
def api_stats():
    return json_response_ok({"stats": db.get_run_stats()})


@api.route("/audit", methods=["GET"])
def api_audit():
    try:
        limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
    except ValueError:
        return json_response_error("'limit' debe ser un entero.")
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    events = db.get_audit_events(limit=limit)
    for ev in events:
        try:
            ev["details"] = json.loads(ev.get("details") or "{}")
        except ValueError:
            ev["details"] = {}
    return json_response_ok({"events": events})


app.register_blueprint(api)


if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=5000)
