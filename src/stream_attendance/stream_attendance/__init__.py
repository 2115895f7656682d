"""Stream Attendance package.

Feature modules (timetables, schedule, overrides, attendance, analytics) each carry a
domain model, a repository interface with its MySQL implementation, a service layer and a
thin Flask controller.
"""
