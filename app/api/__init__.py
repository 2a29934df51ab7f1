"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

- projects.py    : Projects, team roster, statistics, bulk status/archive
- columns.py     : Board columns (create, reorder, delete with task moves)
- tasks.py       : Project tasks (board moves, assignment, sub-tasks, search)
                   and personal daily tasks
- comments.py    : Task comments
- attachments.py : Task attachment metadata

Health checks (/api/health, /api/ready, /api/metrics, /api/ping) are
registered separately by health_checks.py.
"""
