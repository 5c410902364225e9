"""Importing this package registers every built-in command."""

from tools.achievements import triggers  # noqa: F401
from tools.budget import config  # noqa: F401
from tools.cycle import payday  # noqa: F401
from tools.ledger import expenses  # noqa: F401
from tools.state import reset  # noqa: F401
from tools.stats import aggregate  # noqa: F401
from tools.streak import check_in  # noqa: F401
