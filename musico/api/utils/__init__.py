# -*- coding: UTF-8 -*-
"""
Utilitaires de l'API Musico : paramètres, logging, authentification légère.
"""

from .logging import logger
