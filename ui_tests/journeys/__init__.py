"""
Journey-based acceptance testing against a running calculator app.

Every journey registers its own user, so journeys can run in any order and
in parallel. They are skipped when the application at UI_BASE_URL does not
answer.

Journey Order:
    01 - Authentication (API registration, UI login, rejected registrations)
    02 - Calculation BREAD (browse, read, edit, add, delete)
    03 - Negative paths (invalid inputs, signed-out access)
    04 - UI registration (register through the form, then log in)
"""
