"""Time & Leave accounting package.

Organized by feature modules (attendance, leaves, penalties, settings, ...)
with a thin Flask controller layer over service/repository layers.
"""
