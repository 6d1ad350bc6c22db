"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.campsite import Campsite
from models.import_candidate import ImportCandidate
from models.candidate_import import CandidateImport
from models.sync_run import SyncRun
from models.sync_lock import SyncLock

__all__ = [
    'db',
    'Campsite',
    'ImportCandidate',
    'CandidateImport',
    'SyncRun',
    'SyncLock',
]
