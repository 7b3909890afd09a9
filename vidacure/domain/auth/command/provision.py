"""Out-of-band provisioning of doctor accounts."""

import logging

from vidacure.domain.auth.model.account import Account
from vidacure.domain.auth.model.value import Role
from vidacure.domain.auth.port.repository import AccountRepository
from vidacure.domain.auth.service.identity import parse_national_id
from vidacure.domain.auth.service.ssn import SsnHasher
from vidacure.domain.shared.command import Command, CommandHandler, Result
from vidacure.domain.shared.error import ConflictError

logger = logging.getLogger(__name__)


class ProvisionDoctor(Command):
    national_id: str
    name: str
    given_name: str = ""
    family_name: str = ""


class ProvisionDoctorResult(Result):
    account_id: str


class ProvisionDoctorHandler(CommandHandler[ProvisionDoctor, ProvisionDoctorResult]):
    """Create a doctor account ahead of the doctor's first BankID login.

    Refuses if the national ID already belongs to any account: roles are
    fixed at creation, so a patient cannot be promoted here.
    """

    account_repo: AccountRepository
    ssn_hasher: SsnHasher

    async def run(self, cmd: ProvisionDoctor) -> ProvisionDoctorResult:
        national_id = parse_national_id(cmd.national_id)
        ssn_hash = self.ssn_hasher.hash(national_id.root)

        if await self.account_repo.get_by_ssn_hash(ssn_hash) is not None:
            raise ConflictError("An account already exists for this national ID")

        account = Account.create(
            ssn_hash=ssn_hash,
            role=Role.DOCTOR,
            name=cmd.name,
            given_name=cmd.given_name,
            family_name=cmd.family_name,
        )
        if not await self.account_repo.insert_if_absent(account):
            raise ConflictError("An account already exists for this national ID")
        await self.account_repo.commit()

        logger.info("Provisioned doctor account %s", account.id)
        return ProvisionDoctorResult(account_id=str(account.id))
