"""Doctor account provisioning."""

import asyncio

import cyclopts
from sqlalchemy.ext.asyncio import AsyncEngine

from vidacure.application.di import create_container
from vidacure.cli.console import get_console
from vidacure.config import Config, configure_logging
from vidacure.domain.auth.command.provision import (
    ProvisionDoctor,
    ProvisionDoctorHandler,
    ProvisionDoctorResult,
)
from vidacure.domain.shared.error import VidaError
from vidacure.infrastructure.persistence.database import create_schema
from vidacure.util.di.scope import Scope

app = cyclopts.App(name="doctor", help="Manage doctor accounts")


async def _provision(config: Config, cmd: ProvisionDoctor) -> ProvisionDoctorResult:
    container = create_container(config)
    try:
        if config.database.auto_migrate:
            await create_schema(await container.get(AsyncEngine))
        async with container(scope=Scope.UOW) as uow:
            handler = await uow.get(ProvisionDoctorHandler)
            return await handler.run(cmd)
    finally:
        await container.close()


@app.command
def add(
    national_id: str,
    name: str,
    given_name: str = "",
    family_name: str = "",
) -> None:
    """Provision a doctor account before the doctor's first BankID login.

    Args:
        national_id: Swedish personnummer, 12 digits (YYYYMMDDNNNN).
        name: Full display name.
        given_name: Given name.
        family_name: Family name.
    """
    console = get_console()
    config = Config()  # type: ignore[call-arg]
    configure_logging(config.logging)

    cmd = ProvisionDoctor(
        national_id=national_id,
        name=name,
        given_name=given_name,
        family_name=family_name,
    )
    try:
        result = asyncio.run(_provision(config, cmd))
    except VidaError as e:
        console.error(e.message, hint=f"code: {e.code}")
        raise SystemExit(1) from e

    console.success("Doctor account provisioned")
    console.fields("Account", {"id": result.account_id, "name": name, "role": "doctor"})
