"""
Package contenant les routers de l'API.
Les routers sont importés et gérés dans api/__init__.py
"""
