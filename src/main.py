"""`python -m main` desde `src/` durante desarrollo.

Instalado, el mismo punto de entrada es el script `workforce`.
"""

from __future__ import annotations

import sys

from cli.main import run


def main() -> None:
    # Paneles y tablas Rich usan caracteres fuera de cp1252.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    run()


if __name__ == "__main__":
    main()
