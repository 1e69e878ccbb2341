import sys
import json
import logging
import argparse

from htmlcheck import load_and_validate
from htmlcheck.sources import SourceError, parse_extensions

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_CANNOT_EVALUATE = 2


def describe(path, result):
    """Una línea legible por fichero; `result` es Verdict.to_dict(texto)."""
    if result["valid"]:
        return f"[+] {path}: HTML válido"
    where = ""
    if result.get("line"):
        where = f" (línea {result['line']}, columna {result['column']})"
    line = f"[!] {path}: {result['message']}{where}"
    if result["tag"]:
        line += f" -> {result['tag']}"
    if result["expected"]:
        line += f", se esperaba </{result['expected']}>"
    if result["unclosed"]:
        line += ": " + ", ".join(f"<{name}>" for name in result["unclosed"])
    return line


def check_paths(paths, extensions, as_json=False, out=None):
    """Valida cada ruta y devuelve el código de salida global."""
    out = out or sys.stdout
    status = EXIT_VALID
    results = []
    for path in paths:
        try:
            content, verdict = load_and_validate(path, extensions)
        except SourceError as e:
            status = EXIT_CANNOT_EVALUATE
            results.append({"path": path, "error": str(e)})
            if not as_json:
                print(f"[x] {path}: {e}", file=out)
            continue
        if not verdict.valid and status == EXIT_VALID:
            status = EXIT_INVALID
        result = verdict.to_dict(content)
        results.append({"path": path, "verdict": result})
        if not as_json:
            print(describe(path, result), file=out)
    if as_json:
        print(json.dumps(results, ensure_ascii=False, indent=2), file=out)
    return status


def main(argv=None):
    parser = argparse.ArgumentParser(description="Comprueba el anidamiento de tags de documentos HTML")
    parser.add_argument("paths", nargs="+", help="Ficheros .html/.htm a validar")
    parser.add_argument("--ext", default=".html,.htm",
                        help="Extensiones aceptadas, separadas por comas (def: .html,.htm)")
    parser.add_argument("--json", action="store_true", help="Salida en JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Traza de push/pop de la pila")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)-8s %(name)s  %(message)s",
    )
    return check_paths(args.paths, parse_extensions(args.ext), as_json=args.json)


if __name__ == "__main__":
    sys.exit(main())
