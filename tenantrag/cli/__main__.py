"""Allow ``python -m tenantrag.cli`` execution."""

from tenantrag.cli.commands import main

main()
