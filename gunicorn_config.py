"""
gunicorn_config.py — Config del validador de estructura HTML (servicio Flask)

Puntos clave:
- Documentos grandes: timeout amplio, el análisis es lineal pero la subida no.
- preload_app para abrir la BD de histórico una sola vez al arrancar.
- loglevel 'info' (ajústalo a 'warning' si quieres menos ruido).

Uso: gunicorn -c gunicorn_config.py app:app
"""

import os

# Trabaja siempre desde la carpeta del proyecto (evita rutas relativas raras)
os.chdir(os.path.dirname(os.path.abspath(__file__)))

bind = os.getenv("BIND", "0.0.0.0:5000")

# La validación no comparte estado entre peticiones: se puede subir sin miedo
workers = int(os.getenv("WORKERS", "2"))

timeout = 60

preload_app = True

loglevel = os.getenv("LOG_LEVEL", "info").lower()
