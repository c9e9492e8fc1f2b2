"""Runnable confpoll examples.

- ``watch_namespaces``: subscribe to namespaces and log every change signal
"""
