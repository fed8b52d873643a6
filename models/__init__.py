from .voter_model import Voter
from .video_model import Video, VideoStatus
from .vote_model import Vote
from .migration_model import MigrationRequest, MigrationAuditLog, MigrationStatus

__all__ = ['Voter', 'Video', 'VideoStatus', 'Vote', 'MigrationRequest', 'MigrationAuditLog', 'MigrationStatus']
