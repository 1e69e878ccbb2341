"""
Cliente del servicio: envía ficheros HTML a /api/validate de una instancia
en marcha y muestra los veredictos.

    python client.py http://127.0.0.1:5000 index.html --token $TOKEN_API
"""
import os
import sys
import argparse
import requests
from dotenv import load_dotenv

DEFAULT_TIMEOUT = 30


class RemoteCheckError(Exception):
    """El servicio no pudo evaluar el documento."""


def validate_remote(base_url, path, token, timeout=DEFAULT_TIMEOUT, session=None):
    """Sube `path` y devuelve el dict del veredicto."""
    http = session or requests
    url = base_url.rstrip("/") + "/api/validate"
    try:
        with open(path, "rb") as f:
            resp = http.post(
                url,
                files={"file": (os.path.basename(path), f, "text/html")},
                headers={"Authorization": f"Bearer {token}"},
                timeout=timeout,
            )
    except OSError as e:
        # requests.RequestException también es OSError
        raise RemoteCheckError(str(e)) from e

    try:
        data = resp.json()
    except ValueError:
        raise RemoteCheckError(f"HTTP {resp.status_code}: respuesta no JSON")
    if resp.status_code != 200 or not data.get("ok"):
        raise RemoteCheckError(f"HTTP {resp.status_code}: {data.get('error', 'error desconocido')}")
    return data["verdict"]


def main(argv=None):
    load_dotenv()
    parser = argparse.ArgumentParser(description="Valida ficheros HTML contra un servicio remoto")
    parser.add_argument("url", help="URL base del servicio (ej: http://127.0.0.1:5000)")
    parser.add_argument("paths", nargs="+", help="Ficheros a enviar")
    parser.add_argument("--token", default=os.getenv("TOKEN_API"), help="Token API (def: $TOKEN_API)")
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT)

    args = parser.parse_args(argv)
    if not args.token:
        parser.error("Falta el token (--token o TOKEN_API)")

    status = 0
    with requests.Session() as s:
        for path in args.paths:
            try:
                verdict = validate_remote(args.url, path, args.token, args.timeout, session=s)
            except RemoteCheckError as e:
                print(f"[x] {path}: no se pudo evaluar ({e})")
                status = 2
                continue
            if verdict["valid"]:
                print(f"[+] {path}: HTML válido")
            else:
                extra = f": {', '.join(verdict['unclosed'])}" if verdict.get("unclosed") else ""
                print(f"[!] {path}: {verdict['message']}{extra}")
                status = max(status, 1)
    return status


if __name__ == "__main__":
    sys.exit(main())
