from .advisory_lock import advisory_lock
from .assignment_runs import DBAssignmentRunRepository
from .gateway import DBAssignmentGateway
from .session import engine, create_session, database_url
