"""Domain layer for pharmapos application.

Services live in submodules (``pharmapos.domain.sale`` and friends) and are
imported from there; this package stays import-free because the database
layer imports ``pharmapos.domain.entities`` while services import the
database layer.
"""
