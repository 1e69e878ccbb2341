"""
Resultado de una validación estructural (Verdict) y catálogo de motivos.
"""

# Motivos de rechazo (estables: se guardan en histórico y se devuelven por API)
MALFORMED_TAG = "malformed_tag"
UNTERMINATED_RAW_TEXT = "unterminated_raw_text"
INVALID_TAG_NAME = "invalid_tag_name"
SELF_CLOSING_CONFLICT = "self_closing_conflict"
UNEXPECTED_CLOSING_TAG = "unexpected_closing_tag"
MISMATCHED_CLOSING_TAG = "mismatched_closing_tag"
UNCLOSED_TAGS = "unclosed_tags"
EMPTY_DOCUMENT = "empty_document"

REASONS = (
    MALFORMED_TAG,
    UNTERMINATED_RAW_TEXT,
    INVALID_TAG_NAME,
    SELF_CLOSING_CONFLICT,
    UNEXPECTED_CLOSING_TAG,
    MISMATCHED_CLOSING_TAG,
    UNCLOSED_TAGS,
    EMPTY_DOCUMENT,
)

_MESSAGES = {
    MALFORMED_TAG: "Tag mal formada: falta el '>' de cierre",
    UNTERMINATED_RAW_TEXT: "Documento mal formado: elemento de texto sin cierre",
    INVALID_TAG_NAME: "Nombre de tag inválido",
    SELF_CLOSING_CONFLICT: "Tag auto-cerrada usada como cierre",
    UNEXPECTED_CLOSING_TAG: "Tag de cierre sin ninguna tag abierta",
    MISMATCHED_CLOSING_TAG: "Tag de cierre no coincide con la última abierta",
    UNCLOSED_TAGS: "Tags sin cerrar al final del documento",
    EMPTY_DOCUMENT: "Documento vacío",
}


def line_col(text, position):
    """Convierte un índice en (línea, columna), ambas empezando en 1."""
    if position is None or position < 0:
        return None
    position = min(position, len(text))
    line = text.count("\n", 0, position) + 1
    last_nl = text.rfind("\n", 0, position)
    return line, position - last_nl


class Verdict:
    """
    Veredicto de una pasada de validación.

    Válido, o inválido con un motivo de REASONS. Para cada motivo se puede
    adjuntar la tag implicada (`tag`), el índice donde empieza (`position`),
    el nombre esperado en un cierre cruzado (`expected`) y, para
    UNCLOSED_TAGS, la lista de tags abiertas en orden de pop (la más
    interna primero).
    """

    __slots__ = ("valid", "reason", "message", "unclosed", "tag", "position", "expected")

    def __init__(self, valid, reason=None, message=None, unclosed=None,
                 tag=None, position=None, expected=None):
        if not valid and reason not in REASONS:
            raise ValueError(f"Motivo desconocido: {reason!r}")
        self.valid = valid
        self.reason = reason
        self.message = message or _MESSAGES.get(reason)
        self.unclosed = list(unclosed or [])
        self.tag = tag
        self.position = position
        self.expected = expected

    @classmethod
    def ok(cls):
        return cls(True)

    @classmethod
    def invalid(cls, reason, message=None, **extra):
        return cls(False, reason, message, **extra)

    def __bool__(self):
        return self.valid

    # La igualdad compara validez, motivo y tags sin cerrar; tag, position
    # y expected son detalle de presentación. Mutable: no es hashable.
    __hash__ = None

    def __eq__(self, other):
        if not isinstance(other, Verdict):
            return NotImplemented
        return (self.valid, self.reason, self.unclosed) == (other.valid, other.reason, other.unclosed)

    def __repr__(self):
        if self.valid:
            return "Verdict(valid)"
        extra = f", unclosed={self.unclosed!r}" if self.unclosed else ""
        return f"Verdict(invalid, {self.reason}{extra})"

    def to_dict(self, text=None):
        data = {
            "valid": self.valid,
            "reason": self.reason,
            "message": self.message,
            "unclosed": list(self.unclosed),
            "tag": self.tag,
            "position": self.position,
            "expected": self.expected,
        }
        # Con el texto original se añade línea/columna para la UI
        if text is not None and self.position is not None:
            lc = line_col(text, self.position)
            if lc:
                data["line"], data["column"] = lc
        return data
