"""Hera Journal Meta information.
   Hera Journal keeps a biometric cycle journal sealed in a password vault.
"""
__title__ = 'hera_journal'
__description__ = (
   'Hera Journal keeps a biometric cycle journal sealed '
   'in a password-derived encryption vault.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 Hera Journal contributors'
__author__ = 'Hera Journal contributors'
__license__ = 'Apache-2.0'
