# borevue\__init__.py

__version__ = "4.2.0"
