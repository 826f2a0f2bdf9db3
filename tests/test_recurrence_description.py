from datetime import date, datetime

from recurcal.models import (
    CalendarEvent, RecurrencePattern, RecurrenceFrequency, RecurrenceEndType, MonthlyRecurrenceType,
)
from recurcal.recurrence import (
    generate_instances, get_end_description, get_recurrence_description, week_of_month, weekday_index,
)


def test_weekly_until_date():
    pat = RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY, week_days=[1, 3],
                            end_type=RecurrenceEndType.ON_DATE, end_date=date(2025, 12, 31))
    assert get_recurrence_description(pat) == "Repeats weekly on Mon, Wed until 12/31/2025"
    assert get_recurrence_description(pat, '%d.%m.%Y') == "Repeats weekly on Mon, Wed until 31.12.2025"


def test_interval_units():
    daily = RecurrencePattern(frequency=RecurrenceFrequency.DAILY, interval=3)
    assert get_recurrence_description(daily) == "Repeats daily every 3 days"
    weekly = RecurrencePattern(frequency=RecurrenceFrequency.WEEKLY, interval=2, week_days=[5])
    assert get_recurrence_description(weekly) == "Repeats weekly every 2 weeks on Fri"
    yearly = RecurrencePattern(frequency=RecurrenceFrequency.YEARLY, interval=1)
    assert get_recurrence_description(yearly) == "Repeats yearly"


def test_monthly_day_of_month_with_count():
    pat = RecurrencePattern(frequency=RecurrenceFrequency.MONTHLY,
                            monthly_type=MonthlyRecurrenceType.DAY_OF_MONTH, day_of_month=15,
                            end_type=RecurrenceEndType.AFTER_OCCURRENCES, occurrences=6)
    assert get_recurrence_description(pat) == "Repeats monthly on day 15 for 6 occurrences"


def test_monthly_day_of_week_names_the_calendar_row():
    # Februar 2024 beginnt am Donnerstag: Zeile 2 enthält den ersten Dienstag
    pat = RecurrencePattern(frequency=RecurrenceFrequency.MONTHLY,
                            monthly_type=MonthlyRecurrenceType.DAY_OF_WEEK,
                            week_of_month=2, day_of_week=2)
    text = get_recurrence_description(pat)
    assert text == "Repeats monthly on Tue in week 2 of the month"

    ev = CalendarEvent(id='ev1', title='Club', start=datetime(2024, 1, 9, 19, 0))
    feb = generate_instances(ev, pat, date(2024, 2, 1), date(2024, 2, 29))
    assert [i.date.date() for i in feb] == [date(2024, 2, 6)]
    assert week_of_month(feb[0].date) == 2
    assert weekday_index(feb[0].date) == 2


def test_monthly_week_five_is_row_five_not_last():
    # März 2025 beginnt am Samstag: Zeile 5 endet am 29., der letzte Sonntag (30.) liegt in Zeile 6
    pat = RecurrencePattern(frequency=RecurrenceFrequency.MONTHLY,
                            monthly_type=MonthlyRecurrenceType.DAY_OF_WEEK,
                            week_of_month=5, day_of_week=0)
    text = get_recurrence_description(pat)
    assert text == "Repeats monthly on Sun in week 5 of the month"
    assert "last" not in text

    ev = CalendarEvent(id='ev1', title='Brunch', start=datetime(2025, 3, 1, 11, 0))
    march = generate_instances(ev, pat, date(2025, 3, 1), date(2025, 3, 31))
    assert [i.date.date() for i in march] == [date(2025, 3, 23)]
    assert week_of_month(march[0].date) == 5


def test_end_descriptions():
    assert get_end_description(RecurrencePattern()) == 'Never ends'
    assert get_end_description(RecurrencePattern(end_type=RecurrenceEndType.ON_DATE,
                                                 end_date=date(2025, 12, 31))) == 'Ends on 12/31/2025'
    assert get_end_description(RecurrencePattern(end_type=RecurrenceEndType.ON_DATE)) == 'Ends on specific date'
    assert get_end_description(RecurrencePattern(end_type=RecurrenceEndType.AFTER_OCCURRENCES,
                                                 occurrences=10)) == 'Ends after 10 occurrences'
    assert get_end_description(RecurrencePattern(end_type=RecurrenceEndType.AFTER_OCCURRENCES)) == \
        'Ends after specific number'
