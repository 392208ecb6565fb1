"""Class attendance package.

Organized by feature modules (records, sessions, reports, ...) with a thin
Flask controller layer on top of the service/repository layers.
"""
