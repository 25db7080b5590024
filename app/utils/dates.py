import calendar
from datetime import datetime, timedelta


def one_month_before(moment: datetime) -> datetime:
    """Step back one calendar month, keeping day-of-month and time of day.

    When the previous month is too short for the day (e.g. 31 March), the
    surplus days roll forward past that month's end, so 31 March gives
    3 March (2 March in leap years) rather than clamping to February's
    last day.
    """
    year, month = moment.year, moment.month - 1
    if month == 0:
        year, month = year - 1, 12

    days_in_month = calendar.monthrange(year, month)[1]
    overflow = moment.day - days_in_month
    if overflow <= 0:
        return moment.replace(year=year, month=month)
    return moment.replace(year=year, month=month, day=days_in_month) + timedelta(days=overflow)
