"""Due-date arithmetic for recurring obligations.

Month-end policy: clamp to the last valid day of the target month. The day
of month is taken from the schedule's ``anchor_day`` rather than from the
current (possibly clamped) due date, so a schedule anchored on Jan 31 goes
Jan 31 -> Feb 29 -> Mar 31 and repeated advances always agree with a single
jump of the same total length.
"""

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from plaza_billing.exceptions import InvalidConfigurationError
from plaza_billing.models.enums import Frequency, ObligationKind, ObligationStatus
from plaza_billing.models.obligation import RecurringObligationConfig


def add_months(start: date, months: int, anchor_day: int | None = None) -> date:
    """Add calendar months to a date, clamping to the end of the target month.

    Parameters
    ----------
    start : date
        Date to advance from.
    months : int
        Number of calendar months to add (may be negative).
    anchor_day : int | None
        Preferred day of month; defaults to ``start.day``.

    Returns
    -------
    date
        The shifted date.
    """
    return start + relativedelta(months=months, day=anchor_day or start.day)


def frequency_of(config: RecurringObligationConfig) -> Frequency:
    """Return the config's frequency, validating it."""
    try:
        return Frequency(config.frequency)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Obligation {config.config_id} has unrecognized frequency {config.frequency!r}"
        ) from exc


def kind_of(config: RecurringObligationConfig) -> ObligationKind:
    """Return the config's obligation kind, validating it."""
    try:
        return ObligationKind(config.kind)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Obligation {config.config_id} has unrecognized kind {config.kind!r}"
        ) from exc


def status_of(config: RecurringObligationConfig) -> ObligationStatus:
    """Return the config's status, validating it."""
    try:
        return ObligationStatus(config.status)
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Obligation {config.config_id} has unrecognized status {config.status!r}"
        ) from exc


def is_due(config: RecurringObligationConfig, now: date | datetime) -> bool:
    """Check whether a new occurrence should be materialized at ``now``."""
    status = status_of(config)
    today = now.date() if isinstance(now, datetime) else now
    return (
        status == ObligationStatus.ACTIVE
        and bool(config.auto_generate)
        and config.next_due_date <= today
    )


def advance(config: RecurringObligationConfig) -> date:
    """Return the due date following ``config.next_due_date``."""
    return advance_by(config, 1)


def advance_by(config: RecurringObligationConfig, periods: int) -> date:
    """Return the due date ``periods`` intervals after ``config.next_due_date``."""
    frequency = frequency_of(config)
    return add_months(config.next_due_date, frequency.months * periods, config.anchor_day)
