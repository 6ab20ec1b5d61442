import logging

from engconnect.errors import ErrorKind
from engconnect.guard import Authorized, Denied, GuardResult
from engconnect.schemas import Role

logger = logging.getLogger(__name__)


# admins pass every ownership check, never the role check in front of it
def owns_problem(identity, problem):
    if identity.role == Role.admin:
        return True
    return identity.role == Role.company and problem.owner_id == identity.id


def authorize_problem(identity, problem) -> GuardResult:
    if owns_problem(identity, problem):
        return Authorized(identity)
    logger.info("Ownership denied: user %s on problem %s", identity.id, problem.id)
    return Denied(ErrorKind.OWNERSHIP_DENIED)
