"""
Deposit Properties Service - Data Access Layer

Create, look up, select, bulk delete and soft delete deposit records. Selections
are driven by multi-valued query parameters compiled in deposit_filters.
"""

import logging
from typing import Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from deposit_filters import CompiledFilter, compile_filter
from models import DepositProperties
from soft_delete import filter_deleted, only_deleted, set_deleted_flag

logger = logging.getLogger(__name__)

QueryParameters = Mapping[str, Optional[List[str]]]


class DepositPropertiesService:
    """Persistence access for DepositProperties records"""

    @staticmethod
    def create(db: Session, deposit: DepositProperties) -> DepositProperties:
        """
        Persist a new deposit record

        Raises:
            sqlalchemy.exc.IntegrityError: if a record with the same deposit_id exists
        """
        db.add(deposit)
        DepositPropertiesService._commit(db)
        db.refresh(deposit)
        return deposit

    @staticmethod
    def save(db: Session, deposit: DepositProperties) -> DepositProperties:
        """Persist changes to a record attached to this session"""
        return DepositPropertiesService.create(db, deposit)

    @staticmethod
    def merge(db: Session, deposit: DepositProperties) -> DepositProperties:
        """Copy the state of a detached record onto the persistent one and return the latter"""
        merged = db.merge(deposit)
        DepositPropertiesService._commit(db)
        return merged

    @staticmethod
    def delete(db: Session, deposit: DepositProperties) -> None:
        """Remove a single record (hard delete)"""
        db.delete(deposit)
        DepositPropertiesService._commit(db)

    @staticmethod
    def find_by_id(db: Session, deposit_id: str) -> Optional[DepositProperties]:
        return db.get(DepositProperties, deposit_id)

    @staticmethod
    def find_all(db: Session) -> List[DepositProperties]:
        return db.query(DepositProperties).all()

    @staticmethod
    def find_active(db: Session) -> List[DepositProperties]:
        """Records whose deleted flag is not set"""
        return filter_deleted(db.query(DepositProperties)).all()

    @staticmethod
    def find_deleted(db: Session) -> List[DepositProperties]:
        """Records marked as deleted but not yet removed"""
        return only_deleted(db.query(DepositProperties)).all()

    @staticmethod
    def find_selection(db: Session, query_parameters: QueryParameters) -> List[DepositProperties]:
        """
        Get records matching the query parameters

        No parameters at all selects every record.

        Raises:
            InvalidArgument: if a parameter value cannot be compiled into a filter
        """
        if not query_parameters:
            return DepositPropertiesService.find_all(db)

        return DepositPropertiesService._selection(db, query_parameters).all()

    @staticmethod
    def delete_selection(db: Session, query_parameters: QueryParameters) -> int:
        """
        Remove records matching the query parameters

        Without parameters nothing is deleted: an empty selection must never
        be taken to mean every record.

        Returns:
            Number of records removed
        """
        if not query_parameters:
            logger.warning("Delete requested without query parameters, nothing deleted")
            return 0

        query = DepositPropertiesService._selection(db, query_parameters)
        count = query.delete(synchronize_session="fetch")
        DepositPropertiesService._commit(db)
        logger.info(f"Deleted {count} deposit record(s)")
        return count

    @staticmethod
    def update_delete_flag(db: Session, deposit_id: str, deleted: bool) -> int:
        """
        Set the deleted flag of a single record

        Returns:
            Number of records updated, 0 if the deposit does not exist
        """
        return DepositPropertiesService.update_delete_flag_selection(db, {"depositId": [deposit_id]}, deleted)

    @staticmethod
    def update_delete_flag_selection(db: Session, query_parameters: QueryParameters, deleted: bool) -> int:
        """
        Set the deleted flag on all records matching the query parameters

        Without parameters nothing is updated.

        Returns:
            Number of records updated
        """
        if not query_parameters:
            logger.warning("Delete flag update requested without query parameters, nothing updated")
            return 0

        query = DepositPropertiesService._selection(db, query_parameters)
        count = set_deleted_flag(query, deleted)
        DepositPropertiesService._commit(db)
        logger.info(f"Set deleted={deleted} on {count} deposit record(s)")
        return count

    @staticmethod
    def _selection(db: Session, query_parameters: QueryParameters) -> Query:
        compiled = DepositPropertiesService._compile(query_parameters)
        return db.query(DepositProperties).filter(compiled.expression)

    @staticmethod
    def _compile(query_parameters: QueryParameters) -> CompiledFilter:
        """Compile the parameters and report the ones that were not recognized"""
        compiled = compile_filter(query_parameters)
        if compiled.ignored_parameters:
            logger.error("The following query parameters are ignored: " + ", ".join(compiled.ignored_parameters))
        if compiled.is_unrestricted:
            logger.warning("Query parameters impose no restriction, the selection matches every record")
        else:
            logger.debug(f"Compiled deposit filter: {compiled.expression}")
        return compiled

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
