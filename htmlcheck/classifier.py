"""
Clasificación de tags a partir de su texto interior (lo que hay entre '<' y '>').
"""

# Elementos vacíos: nunca llevan tag de cierre
VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

# Contenedores de texto crudo: su cuerpo no se analiza
RAW_TEXT_CONTAINERS = frozenset({"script", "style"})

COMMENT_PREFIX = "!--"
DOCTYPE_PREFIX = "!DOCTYPE"
PROCESSING_INSTRUCTION_PREFIX = "?"

_NAME_DELIMITERS = "/>"


def extract_name(interior: str) -> str:
    """Nombre inicial de la tag: hasta el primer espacio, '/' o '>'."""
    if not interior:
        return ""
    for idx, ch in enumerate(interior):
        if ch.isspace() or ch in _NAME_DELIMITERS:
            return interior[:idx]
    return interior


def should_ignore(interior: str) -> bool:
    """Comentarios, DOCTYPE e instrucciones de procesamiento no cuentan."""
    return (
        interior.startswith(COMMENT_PREFIX)
        or interior[:len(DOCTYPE_PREFIX)].upper() == DOCTYPE_PREFIX
        or interior.startswith(PROCESSING_INSTRUCTION_PREFIX)
    )


def is_void_element(name: str) -> bool:
    return name.lower() in VOID_ELEMENTS


def is_raw_text_container(name: str) -> bool:
    return name.lower() in RAW_TEXT_CONTAINERS


def normalize_name(interior: str):
    """
    Devuelve (nombre_normalizado, es_cierre).

    "/DIV class" -> ("div", True); "Img src='x'/" -> ("img", False)
    """
    is_closing = interior.startswith("/")
    if is_closing:
        interior = interior[1:]
    return extract_name(interior).lower(), is_closing


def has_invalid_name(name: str) -> bool:
    return not name or "<" in name or ">" in name
