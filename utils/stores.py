# utils/stores.py
"""
SQLAlchemy-backed collaborators of the placement engine: the roster of
source-year enrollments, the class catalog, and the durable enrollment store.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from models import SchoolClass, SchoolYear, Student, StudentClass
from utils.errors import PersistenceFailure
from utils.extensions import db
from utils.records import TargetClass


class SqlRosterProvider:

    def list_source_enrollments(self, year_id):
        """Active students with an active enrollment in an active class of year_id."""
        rows = (
            db.session.query(Student, SchoolClass)
            .join(StudentClass, StudentClass.student_id == Student.id)
            .join(SchoolClass, StudentClass.class_id == SchoolClass.id)
            .filter(
                SchoolClass.school_year_id == year_id,
                SchoolClass.is_active.is_(True),
                StudentClass.is_active.is_(True),
                Student.is_active.is_(True),
            )
            .order_by(SchoolClass.grade_level, SchoolClass.section, Student.last_name, Student.first_name)
            .all()
        )

        enrollments = []
        seen = set()
        for student, school_class in rows:
            if student.id in seen:
                continue
            seen.add(student.id)
            enrollments.append({
                'student_id': student.id,
                'name': student.display_name,
                'lrn': student.lrn,
                'class_id': school_class.id,
                'grade_level': school_class.grade_level,
                'section': school_class.section,
            })
        return enrollments


class SqlClassCatalog:

    def _to_target_class(self, school_class, committed_count):
        max_capacity = school_class.max_capacity
        if max_capacity is None:
            max_capacity = current_app.config.get('DEFAULT_MAX_CAPACITY', 50)
        return TargetClass(
            class_id=school_class.id,
            school_year_id=school_class.school_year_id,
            grade_level=school_class.grade_level,
            section=school_class.section,
            max_capacity=max_capacity,
            committed_count=committed_count,
        )

    def list_classes(self, year_id, grade_level=None):
        query = SchoolClass.query.filter_by(school_year_id=year_id, is_active=True)
        if grade_level:
            query = query.filter_by(grade_level=grade_level)
        classes = query.order_by(SchoolClass.grade_level, SchoolClass.section).all()

        counts = dict(
            db.session.query(StudentClass.class_id, func.count(StudentClass.id))
            .filter(StudentClass.class_id.in_([c.id for c in classes]), StudentClass.is_active.is_(True))
            .group_by(StudentClass.class_id)
            .all()
        ) if classes else {}

        return [self._to_target_class(c, counts.get(c.id, 0)) for c in classes]

    def get_class(self, class_id):
        school_class = db.session.get(SchoolClass, class_id)
        if school_class is None or not school_class.is_active:
            return None
        return self._to_target_class(school_class, self.committed_count(class_id))

    def committed_count(self, class_id):
        return StudentClass.query.filter_by(class_id=class_id, is_active=True).count()


class SqlEnrollmentStore:

    def get_school_year(self, year_id):
        return db.session.get(SchoolYear, year_id)

    def is_locked(self, year_id):
        year = db.session.get(SchoolYear, year_id)
        return bool(year and year.is_locked)

    def set_locked(self, year_id, locked, locked_by=None):
        year = db.session.get(SchoolYear, year_id)
        if year is None:
            raise PersistenceFailure('School year not found', school_year_id=year_id)
        try:
            year.is_locked = locked
            year.locked_by = locked_by if locked else None
            year.locked_at = datetime.utcnow() if locked else None
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception("Failed to change lock state of school year %s", year_id)
            raise PersistenceFailure(f"Database error: {e}", school_year_id=year_id) from e

    def _committed_query(self, year_id):
        return (
            StudentClass.query
            .join(SchoolClass, StudentClass.class_id == SchoolClass.id)
            .filter(
                SchoolClass.school_year_id == year_id,
                SchoolClass.is_active.is_(True),
                StudentClass.is_active.is_(True),
            )
        )

    def is_committed(self, student_id, year_id):
        return self._committed_query(year_id).filter(StudentClass.student_id == student_id).first() is not None

    def committed_student_ids(self, year_id):
        return {row.student_id for row in self._committed_query(year_id).all()}

    def committed_placements(self, year_id):
        """student_id -> class_id for every committed placement in year_id."""
        return {row.student_id: row.class_id for row in self._committed_query(year_id).all()}

    def insert_committed_placement(self, student_id, class_id, enrolled_by):
        """Persist one placement in its own transaction.

        An inactive row for the same (student, class) is reactivated instead of
        inserting a duplicate.
        """
        try:
            existing = StudentClass.query.filter_by(student_id=student_id, class_id=class_id).first()
            if existing:
                existing.is_active = True
                existing.enrolled_by = enrolled_by
                existing.enrolled_at = datetime.utcnow()
                enrollment = existing
            else:
                enrollment = StudentClass(
                    student_id=student_id,
                    class_id=class_id,
                    enrolled_by=enrolled_by,
                    enrolled_at=datetime.utcnow(),
                    is_active=True,
                )
                db.session.add(enrollment)
            db.session.commit()
            return enrollment.id
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to commit placement of student %s into class %s", student_id, class_id
            )
            raise PersistenceFailure(f"Database error: {e}", student_id=student_id, class_id=class_id) from e
