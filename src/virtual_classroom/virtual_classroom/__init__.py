"""Virtual Classroom package.

Feature modules (users, courses, sessions, attendance, assignments) each hold a
domain model, a repository interface with its MySQL implementation, a service
layer and a thin Flask controller.
"""
