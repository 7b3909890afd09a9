"""Main CLI application using Cyclopts."""

import cyclopts

from vidacure.cli.commands import doctor, server

app = cyclopts.App(
    name="vidacure",
    help="Vidacure backend - CLI",
)

app.command(server.app, name="server")
app.command(doctor.app, name="doctor")
