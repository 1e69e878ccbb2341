import io
import json
import pytest
from unittest.mock import patch

import app as app_module

def test_api_unauthorized(client):
    resp = client.post('/api/validate', json={"content": "<p></p>"})
    assert resp.status_code == 401

    resp = client.post('/api/validate', json={"content": "<p></p>"},
                       headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401

def test_api_requires_configured_token(client):
    with patch('app.TOKEN_API', None):
        resp = client.post('/api/validate', json={"content": "<p></p>"},
                           headers={"Authorization": "Bearer "})
        assert resp.status_code == 401

def test_api_validate_valid(client, auth_headers):
    resp = client.post('/api/validate', json={"content": "<html><body></body></html>"},
                       headers=auth_headers)
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["ok"] is True
    assert data["verdict"]["valid"] is True
    assert data["verdict"]["run_id"] is not None

def test_api_validate_with_x_api_key(client):
    resp = client.post('/api/validate', json={"content": "<p></p>"},
                       headers={"X-API-Key": "test-token"})
    assert resp.status_code == 200

def test_api_validate_mismatch_details(client, auth_headers):
    content = "<html>\n<body>\n</html>"
    resp = client.post('/api/validate', json={"content": content, "filename": "x.html"},
                       headers=auth_headers)
    verdict = resp.get_json()["verdict"]
    assert verdict["valid"] is False
    assert verdict["reason"] == "mismatched_closing_tag"
    assert verdict["expected"] == "body"
    assert verdict["line"] == 3
    assert verdict["filename"] == "x.html"

def test_api_validate_unclosed(client, auth_headers):
    resp = client.post('/api/validate', json={"content": "<html><body>"}, headers=auth_headers)
    verdict = resp.get_json()["verdict"]
    assert verdict["reason"] == "unclosed_tags"
    assert verdict["unclosed"] == ["body", "html"]

def test_api_empty_content_is_a_verdict(client, auth_headers):
    resp = client.post('/api/validate', json={"content": "  "}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["verdict"]["reason"] == "empty_document"

def test_api_missing_content(client, auth_headers):
    resp = client.post('/api/validate', json={"text": "<p></p>"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()["ok"] is False

def test_api_rejects_unsupported_filename(client, auth_headers):
    resp = client.post('/api/validate', json={"content": "<p></p>", "filename": "a.txt"},
                       headers=auth_headers)
    assert resp.status_code == 415

def test_api_upload(client, auth_headers):
    data = {"file": (io.BytesIO(b"<ul><li>a</li></ul>"), "lista.htm")}
    resp = client.post('/api/validate', data=data, headers=auth_headers,
                       content_type='multipart/form-data')
    assert resp.status_code == 200
    assert resp.get_json()["verdict"]["valid"] is True

def test_api_upload_undecodable(client, auth_headers):
    data = {"file": (io.BytesIO(b"\xff\xfe\x00<"), "roto.html")}
    resp = client.post('/api/validate', data=data, headers=auth_headers,
                       content_type='multipart/form-data')
    assert resp.status_code == 400

def test_api_upload_too_large(client, app, auth_headers):
    app.config["MAX_CONTENT_LENGTH"] = 64
    try:
        data = {"file": (io.BytesIO(b"<p>" + b"x" * 500 + b"</p>"), "big.html")}
        resp = client.post('/api/validate', data=data, headers=auth_headers,
                           content_type='multipart/form-data')
        assert resp.status_code == 413
    finally:
        app.config["MAX_CONTENT_LENGTH"] = app_module.MAX_CONTENT_BYTES

def test_api_rate_limit(client, auth_headers):
    with patch('app.RATE_LIMIT_PER_MIN', 2):
        for _ in range(2):
            assert client.post('/api/validate', json={"content": "<p></p>"},
                               headers=auth_headers).status_code == 200
        resp = client.post('/api/validate', json={"content": "<p></p>"}, headers=auth_headers)
        assert resp.status_code == 429

def test_api_history_and_stats(client, auth_headers):
    client.post('/api/validate', json={"content": "<p></p>", "filename": "ok.html"}, headers=auth_headers)
    client.post('/api/validate', json={"content": "</p>"}, headers=auth_headers)

    resp = client.get('/api/history?limit=10', headers=auth_headers)
    runs = resp.get_json()["runs"]
    assert len(runs) == 2
    assert runs[0]["reason"] == "unexpected_closing_tag"
    assert runs[1]["filename"] == "ok.html"

    stats = client.get('/api/stats', headers=auth_headers).get_json()["stats"]
    assert stats["total"] == 2
    assert stats["by_reason"] == {"unexpected_closing_tag": 1}

def test_api_history_bad_limit(client, auth_headers):
    resp = client.get('/api/history?limit=abc', headers=auth_headers)
    assert resp.status_code == 400

def test_api_audit_written(client, auth_headers):
    client.post('/api/validate', json={"content": "<p></p>"}, headers=auth_headers)
    with open(app_module.AUDIT_LOG_FILE, encoding="utf-8") as f:
        records = [json.loads(line) for line in f]
    assert records[-1]["event"] == "validate"
    assert records[-1]["actor"].startswith("api/")
    assert records[-1]["details"]["valid"] is True

def test_api_history_single_run(client, auth_headers):
    resp = client.post('/api/validate', json={"content": "<html><body>", "filename": "a.html"},
                       headers=auth_headers)
    run_id = resp.get_json()["verdict"]["run_id"]

    resp = client.get(f'/api/history/{run_id}', headers=auth_headers)
    assert resp.status_code == 200
    run = resp.get_json()["run"]
    assert run["id"] == run_id
    assert run["filename"] == "a.html"
    assert run["unclosed"] == ["body", "html"]

    assert client.get('/api/history/9999', headers=auth_headers).status_code == 404

def test_api_history_requires_token(client):
    assert client.get('/api/history/1').status_code == 401
    assert client.delete('/api/history').status_code == 401
    assert client.get('/api/audit').status_code == 401

def test_api_history_clear(client, auth_headers):
    client.post('/api/validate', json={"content": "<p></p>"}, headers=auth_headers)
    resp = client.delete('/api/history', headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["ok"] is True
    assert client.get('/api/history', headers=auth_headers).get_json()["runs"] == []

    events = client.get('/api/audit', headers=auth_headers).get_json()["events"]
    assert events[0]["event"] == "history_cleared"

def test_api_audit_events(client, auth_headers):
    client.post('/api/validate', json={"content": "</p>", "filename": "x.html"}, headers=auth_headers)
    client.post('/api/validate', json={"content": "<p></p>"}, headers={"Authorization": "Bearer bad"})

    resp = client.get('/api/audit?limit=10', headers=auth_headers)
    assert resp.status_code == 200
    events = resp.get_json()["events"]
    # más reciente primero
    assert [e["event"] for e in events] == ["api_unauthorized", "validate"]
    assert events[1]["scope"] == "x.html"
    assert events[1]["details"]["reason"] == "unexpected_closing_tag"

    assert client.get('/api/audit?limit=x', headers=auth_headers).status_code == 400

def test_healthz_checks_database(client, tmp_path):
    assert client.get('/healthz').get_json()["status"] == "ok"
    with patch('db.DB_FILE', str(tmp_path / "no-existe" / "history.db")):
        resp = client.get('/healthz')
    assert resp.status_code == 500
    assert resp.get_json()["status"] == "error"
