"""
API package for the PDV period engine.
RESTful surface over the tax period lifecycle.
"""
