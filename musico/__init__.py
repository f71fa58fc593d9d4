# -*- coding: UTF-8 -*-
"""Musico : file de lecture persistée et relais temps réel."""

__version__ = "1.0.0"
