"""Main CLI application using Cyclopts.

The CLI only reads from registries; nothing is copied or pushed.
"""

import cyclopts

from bdesc.cli.commands import describe

app = cyclopts.App(
    name="bdesc",
    help="bdesc - inspect imgpkg bundles in OCI registries",
)

app.command(describe.app, name="describe")
