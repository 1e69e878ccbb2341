"""
Colaboradores externos al núcleo: comprobación de la ruta y lectura del fichero.

Ambos fallan con excepciones: un fichero que no se puede evaluar no tiene
veredicto.
"""
import logging
import os

from .validator import validate_structure

log = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".html", ".htm")


class SourceError(ValueError):
    """No se puede evaluar el documento (ruta o contenido)."""


class UnsupportedFileError(SourceError):
    pass


class ContentReadError(SourceError):
    pass


def parse_extensions(raw):
    """".html, HTM ,xhtml" -> (".html", ".htm", ".xhtml")"""
    exts = []
    for part in (raw or "").split(","):
        part = part.strip().lower()
        if not part:
            continue
        if not part.startswith("."):
            part = "." + part
        exts.append(part)
    return tuple(exts) or DEFAULT_EXTENSIONS


def is_markup_path(path, extensions=DEFAULT_EXTENSIONS) -> bool:
    if not path:
        return False
    lower = str(path).lower()
    return any(lower.endswith(ext) for ext in extensions)


def check_path(path, extensions=DEFAULT_EXTENSIONS):
    """Rechaza rutas que no son de un documento HTML, antes de leer nada."""
    if not is_markup_path(path, extensions):
        raise UnsupportedFileError(
            f"Extensión inválida. Usa {' o '.join(extensions)}"
        )


def read_content(path, encoding="utf-8") -> str:
    try:
        with open(path, "r", encoding=encoding) as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ContentReadError(f"No se pudo leer {path}: {e}") from e


def decode_bytes(data, encoding="utf-8") -> str:
    """Contenido subido (bytes) -> texto; el BOM de UTF-8 se descarta."""
    try:
        return data.decode("utf-8-sig" if encoding.lower() in ("utf-8", "utf8") else encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise ContentReadError(f"Contenido no decodificable como {encoding}: {e}") from e


def load_and_validate(path, extensions=DEFAULT_EXTENSIONS, encoding="utf-8", on_push=None, on_pop=None):
    """
    Ruta -> (texto, Verdict), con una sola lectura del fichero.

    El texto permite situar el defecto (Verdict.to_dict(texto)) sin volver
    a leer el disco. Lanza SourceError si el fichero no se puede evaluar.
    """
    check_path(path, extensions)
    content = read_content(path, encoding)
    log.debug("validando %s (%d caracteres)", os.path.basename(str(path)), len(content))
    return content, validate_structure(content, on_push=on_push, on_pop=on_pop)


def validate_file(path, extensions=DEFAULT_EXTENSIONS, encoding="utf-8", on_push=None, on_pop=None):
    """Ruta -> Verdict. Lanza SourceError si el fichero no se puede evaluar."""
    return load_and_validate(path, extensions, encoding, on_push, on_pop)[1]
