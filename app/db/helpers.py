"""Database session helpers."""

from sqlalchemy.orm import Session


def commit_and_refresh(db: Session, *instances) -> None:
    """
    Commit the transaction and refresh each given instance.
    Instances that are None are skipped so optional results can be passed through.
    """
    db.commit()
    for obj in instances:
        if obj is not None:
            db.refresh(obj)


def apply_fields(instance, fields: dict, *, skip_none: bool = True) -> None:
    """
    Copy fields onto an ORM instance.

    With skip_none=True (partial update) a None value keeps the stored one,
    mirroring PATCH semantics; replace operations pass skip_none=False.
    """
    for name, value in fields.items():
        if value is None and skip_none:
            continue
        setattr(instance, name, value)
