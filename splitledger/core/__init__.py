"""
Core settlement types: exceptions, fee arithmetic, data model, signing.
"""
