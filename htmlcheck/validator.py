"""
Validación estructural de HTML en una sola pasada.

Se recorre el documento de izquierda a derecha; cada '<' abre una tag cuyo
final se busca respetando comillas, se clasifica y se apila/desapila. El
primer defecto corta la pasada; sólo las tags abiertas al final se
informan todas juntas.
"""
import logging

from . import classifier, scanner
from .stack import TagStack
from .verdict import (
    Verdict,
    EMPTY_DOCUMENT,
    INVALID_TAG_NAME,
    MALFORMED_TAG,
    MISMATCHED_CLOSING_TAG,
    SELF_CLOSING_CONFLICT,
    UNCLOSED_TAGS,
    UNEXPECTED_CLOSING_TAG,
    UNTERMINATED_RAW_TEXT,
)

log = logging.getLogger(__name__)


class TagOccurrence:
    """Una tag encontrada en el texto: límites [start, end] de '<' y '>'."""

    __slots__ = ("start", "end", "interior", "name", "is_closing", "is_self_closing")

    def __init__(self, text, start, end):
        self.start = start
        self.end = end
        self.interior = text[start + 1:end]
        self.name, self.is_closing = classifier.normalize_name(self.interior)
        self.is_self_closing = (
            classifier.is_void_element(self.name) or self.interior.endswith("/")
        )

    @property
    def is_raw_text_open(self):
        return not self.is_closing and classifier.is_raw_text_container(self.name)

    def __repr__(self):
        return f"<TagOccurrence {self.interior!r} @{self.start}>"


def _fail(reason, occ=None, **extra):
    if occ is not None:
        extra.setdefault("tag", "<" + occ.interior + ">")
        extra.setdefault("position", occ.start)
    verdict = Verdict.invalid(reason, **extra)
    log.debug("documento inválido: %s (%s)", reason, extra.get("tag"))
    return verdict


def validate_structure(text, on_push=None, on_pop=None) -> Verdict:
    """
    Valida el anidamiento de tags de `text` y devuelve un Verdict.

    Nunca lanza excepciones por HTML mal formado: todo defecto se modela
    como un veredicto inválido. on_push/on_pop se pasan a la pila para
    trazar la evolución del anidamiento.
    """
    if not text or not text.strip():
        return _fail(EMPTY_DOCUMENT)

    stack = TagStack(on_push=on_push, on_pop=on_pop)
    length = len(text)
    i = 0

    while i < length:
        if text[i] != "<":
            i += 1
            continue

        # Los comentarios pueden contener comillas o '>' sueltos
        if text.startswith(scanner.COMMENT_OPEN, i):
            end = scanner.find_comment_end(text, i + 2)
            if end == scanner.NOT_FOUND:
                return _fail(MALFORMED_TAG, position=i, tag=text[i:i + 20])
            i = end
            continue

        closing_index = scanner.find_closing_bracket(text, i + 1)
        if closing_index == scanner.NOT_FOUND:
            return _fail(MALFORMED_TAG, position=i, tag=text[i:i + 20])

        tag = TagOccurrence(text, i, closing_index)
        i = closing_index + 1

        if classifier.should_ignore(tag.interior):
            continue

        if tag.is_raw_text_open:
            end = scanner.skip_raw_text_content(text, closing_index, tag.name)
            if end == scanner.NOT_FOUND:
                return _fail(UNTERMINATED_RAW_TEXT, tag)
            i = end
            continue

        if classifier.has_invalid_name(tag.name):
            return _fail(INVALID_TAG_NAME, tag)

        if tag.is_self_closing:
            if tag.is_closing:
                return _fail(SELF_CLOSING_CONFLICT, tag)
            continue

        if tag.is_closing:
            if stack.is_empty():
                return _fail(UNEXPECTED_CLOSING_TAG, tag)
            top = stack.pop()
            if top != tag.name:
                return _fail(MISMATCHED_CLOSING_TAG, tag, expected=top)
            continue

        stack.push(tag.name)

    if not stack.is_empty():
        return _fail(UNCLOSED_TAGS, unclosed=stack.drain_remaining())

    return Verdict.ok()


def is_valid_html(text) -> bool:
    return validate_structure(text).valid
