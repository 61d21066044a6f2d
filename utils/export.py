# utils/export.py
import csv
import os
from datetime import datetime

from flask import current_app

from utils.audit import record_placement_event
from utils.staging import get_registry
from utils.stores import SqlClassCatalog, SqlEnrollmentStore, SqlRosterProvider
from utils.validation import resolve_session_key

EXPORT_PREFIX = 'placement_preview_'
EXPORT_COLUMNS = ['student_id', 'student_name', 'source_classification', 'target_classification', 'status']


class PreviewExporter:
    """
    Writes the committed and currently staged placements of a source/target
    pair to a new CSV file. Read-only: staging state is looked at, never created
    or changed, so exporting is allowed after the target year is locked.
    """

    def __init__(self, roster=None, catalog=None, enrollment_store=None, registry=None,
                 export_dir=None, audit=record_placement_event):
        self.roster = roster or SqlRosterProvider()
        self.catalog = catalog or SqlClassCatalog()
        self.enrollment_store = enrollment_store or SqlEnrollmentStore()
        self.registry = registry if registry is not None else get_registry()
        self.export_dir = export_dir or current_app.config['EXPORT_FOLDER']
        self.audit = audit

    def _build_filename(self, source_name, target_name):
        timestamp = datetime.utcnow().strftime('%Y%m%d%H%M%S')
        base = (f"{EXPORT_PREFIX}SY{source_name.replace('-', '_')}"
                f"_to_SY{target_name.replace('-', '_')}_{timestamp}")
        filename = f"{base}.csv"
        counter = 1
        while os.path.exists(os.path.join(self.export_dir, filename)):
            filename = f"{base}_{counter}.csv"
            counter += 1
        return filename

    def rows(self, key):
        roster = self.roster.list_source_enrollments(key.source_year_id)
        class_names = {c.class_id: c.display_name for c in self.catalog.list_classes(key.target_year_id)}
        committed = self.enrollment_store.committed_placements(key.target_year_id)
        workspace = self.registry.peek(key)
        staged = workspace.store.all() if workspace else {}

        staged_rows, committed_rows = [], []
        for entry in roster:
            student_id = entry['student_id']
            source_label = f"{entry['grade_level']} - {entry['section']}"
            if student_id in committed:
                committed_rows.append([
                    student_id, entry['name'], source_label,
                    class_names.get(committed[student_id], 'Unknown Class'), 'committed',
                ])
            elif student_id in staged:
                staged_rows.append([
                    student_id, entry['name'], source_label,
                    class_names.get(staged[student_id], 'Unknown Class'), 'staged',
                ])
        return staged_rows + committed_rows

    def export(self, source_year_id, target_year_id, acting_user_id=None):
        key = resolve_session_key(self.enrollment_store, source_year_id, target_year_id)
        source_name = self.enrollment_store.get_school_year(key.source_year_id).name
        target_name = self.enrollment_store.get_school_year(key.target_year_id).name

        os.makedirs(self.export_dir, exist_ok=True)
        filename = self._build_filename(source_name, target_name)
        filepath = os.path.join(self.export_dir, filename)
        rows = self.rows(key)

        # utf-8-sig writes a BOM so spreadsheet tools pick up the encoding
        with open(filepath, 'x', newline='', encoding='utf-8-sig') as csvfile:
            writer = csv.writer(csvfile)
            writer.writerow(EXPORT_COLUMNS)
            writer.writerows(rows)

        current_app.logger.info("Placement preview exported: %s (%s rows)", filename, len(rows))
        self.audit('export', acting_user_id, school_year_id=key.target_year_id,
                   filename=filename, record_count=len(rows))
        return {'filepath': filepath, 'filename': filename, 'record_count': len(rows)}


def resolve_export_path(filename):
    """Absolute path of a previous export, or None if the name is not one of ours."""
    filename = os.path.basename(filename or '')
    if not filename.startswith(EXPORT_PREFIX) or not filename.endswith('.csv'):
        return None
    path = os.path.join(current_app.config['EXPORT_FOLDER'], filename)
    return path if os.path.isfile(path) else None
