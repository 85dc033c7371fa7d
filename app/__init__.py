"""Aslam Tailor storefront backend: shipping relay and admin dashboard metrics"""

__version__ = "1.0.0"
