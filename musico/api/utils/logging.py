# -*- coding: utf-8 -*-
import os
import logging
import pathlib
from datetime import datetime
from logging.handlers import RotatingFileHandler

from musico.api.utils.settings import get_log_dir, get_log_level

date_format = "%Y%m%d"
logdir = get_log_dir()
logfiles = os.path.join(logdir, 'musico - ' + datetime.today().strftime(date_format) + '.log')

pathlib.Path(logdir).mkdir(parents=True, exist_ok=True)

# logger partagé par tous les modules de l'API
logger = logging.getLogger('musico')
log_level = get_log_level()
logger.setLevel(getattr(logging, log_level, logging.INFO))

# temps :: niveau :: message
formatter = logging.Formatter('%(asctime)s :: %(levelname)s :: %(message)s')

if not logger.handlers:
    # fichier en mode 'append', 5 backups de 1Mo max
    file_handler = RotatingFileHandler(filename=logfiles,
                                       mode='a',
                                       maxBytes=1000000,
                                       backupCount=5)
    file_handler.setLevel(getattr(logging, log_level, logging.INFO))
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # second handler vers la console
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(getattr(logging, log_level, logging.INFO))
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
