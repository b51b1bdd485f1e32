from typing import Iterable

from .records import RuleConflict


def old_error_report(records: Iterable[RuleConflict]) -> str:
    message = ["Could not solve the environment. The reported errors are:"]
    for r in records:
        message += ["   " + line for line in str(r).split("\n")]
    return "\n".join(message)
