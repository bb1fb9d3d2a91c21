"""Campus event attendance package.

This package is organized by feature modules (students, events, attendance,
reports) with a thin Flask controller layer over service/repository layers.
"""
