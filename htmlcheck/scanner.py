"""
Búsqueda de límites de tags sobre el texto completo.

Todas las funciones trabajan con índices sobre el documento y devuelven
NOT_FOUND (-1) cuando el documento termina antes de encontrar el límite.
"""
import re

NOT_FOUND = -1

COMMENT_OPEN = "<!--"
COMMENT_CLOSE = "-->"


def find_closing_bracket(text: str, from_index: int) -> int:
    """
    Índice del primer '>' fuera de comillas a partir de from_index.

    Las comillas dobles sólo cuentan fuera de simples y viceversa, así
    title=">" o data-x='a"b' no cortan la tag. No hay escapes: en HTML la
    barra invertida dentro de un atributo es un carácter normal.
    """
    in_double = False
    in_single = False
    for idx in range(from_index, len(text)):
        ch = text[idx]
        if ch == '"' and not in_single:
            in_double = not in_double
        elif ch == "'" and not in_double:
            in_single = not in_single
        elif ch == ">" and not in_double and not in_single:
            return idx
    return NOT_FOUND


def skip_raw_text_content(text: str, from_index: int, tag_name: str) -> int:
    """
    Salta el cuerpo de un <script>/<style> buscando su "</nombre>" literal.

    La comparación ignora mayúsculas (<SCRIPT> ... </script> cierra bien).
    Devuelve el índice justo después del '>' de cierre.
    """
    pattern = re.compile(re.escape(f"</{tag_name}>"), re.IGNORECASE)
    match = pattern.search(text, from_index)
    if match is None:
        return NOT_FOUND
    return match.end()


def find_comment_end(text: str, from_index: int) -> int:
    """Índice justo después del "-->" que cierra un comentario."""
    end = text.find(COMMENT_CLOSE, from_index)
    if end == -1:
        return NOT_FOUND
    return end + len(COMMENT_CLOSE)
