"""
Accepted request field spellings.

Portal clients send the same value under several names; each logical field
lists its aliases in priority order and ``pick`` returns the first
non-empty one.
"""

STUDENT_ID_ALIASES = ('student_id', 'studentId', 'id')
REGISTRATION_NUMBER_ALIASES = ('registrationNumber', 'registration_number', 'regNumber', 'reg_number')
LEAVE_START_ALIASES = ('start_date', 'startDate', 'from')
LEAVE_END_ALIASES = ('end_date', 'endDate', 'to')
LEAVE_REASON_ALIASES = ('reason', 'academic_leave_reason')
DEREGISTRATION_REASON_ALIASES = ('reason', 'deregistration_reason')


def pick(source, aliases, default=None):
    """Return the first non-empty value of ``source`` under any of ``aliases``"""
    if not source:
        return default
    for name in aliases:
        value = source.get(name)
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, ''):
            return value
    return default
