"""Allow ``python -m machine_rag.cli`` execution."""

from machine_rag.cli.main import main

main()
