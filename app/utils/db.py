from contextlib import contextmanager
import logging
from sqlalchemy.exc import OperationalError
from models import db
from app.services.errors import MarketplaceError, TransientError


@contextmanager
def transactional(message="DB transaction failed"):
    """Context manager to wrap a database transaction.

    Expected marketplace failures are rolled back and re-raised as they are;
    lost connections surface as a retryable :class:`TransientError`.
    """
    try:
        yield
        db.session.commit()
    except MarketplaceError as e:
        logging.info(f"{message}: %s", e)
        db.session.rollback()
        raise
    except OperationalError as e:
        logging.error(f"{message}: %s", e, exc_info=True)
        db.session.rollback()
        raise TransientError("The data store is temporarily unavailable, please retry") from e
    except Exception as e:
        logging.error(f"{message}: %s", e, exc_info=True)
        db.session.rollback()
        raise
