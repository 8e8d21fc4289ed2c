# Arkham entity hot wallet crawler @ KrsMt.

__version__ = "4.1.0"
