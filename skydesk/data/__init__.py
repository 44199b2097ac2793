# data/__init__.py
"""Mock reference data: routes, aircraft, customers and airline policies"""
