"""Like-notification feed service.

A regular package so the local ``app`` wins over any installed distribution
exposing a module of the same name.
"""
