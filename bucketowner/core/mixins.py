from sqlalchemy import orm

from bucketowner.utils import stringify


class ModelUpdateMixin:
    def update(self, database: orm.session.Session, commit: bool = True, **kwargs) -> None:
        """ Instead of requiring three lines to update a single field inside
        a database session, this method updates a single field in one line.

        Example usage:
            run.update(database, status='complete', account_id='123456789012') """

        for key, value in kwargs.items():
            value = stringify(value)
            setattr(self, key, value)

        database.add(self)

        if commit:
            database.commit()
