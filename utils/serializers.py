from dataclasses import asdict


def serialize_admin(admin):
    return {
        'id': admin.id,
        'username': admin.username,
        'admin_id': admin.admin_id
    }

def serialize_school_year(year):
    return {
        'id': year.id,
        'name': year.name,
        'is_active': year.is_active,
        'is_locked': year.is_locked,
        'locked_by': year.locked_by,
        'locked_at': year.locked_at.strftime('%Y-%m-%d %H:%M:%S') if year.locked_at else None
    }

def serialize_candidate(c, staged_class_id=None):
    return {
        'student_id': c.student_id,
        'display_name': c.display_name,
        'lrn': c.lrn,
        'source_class_id': c.source_class_id,
        'source_grade_level': c.source_classification.grade_level,
        'source_section': c.source_classification.section,
        'source_classification': c.source_classification.label,
        'suggested_grade_level': c.suggested_classification.grade_level,
        'suggestion': f"{c.source_classification.grade_level} → {c.suggested_classification.grade_level}",
        'staged_class_id': staged_class_id
    }

def serialize_target_class(tc, staged_count=0):
    return {
        'class_id': tc.class_id,
        'school_year_id': tc.school_year_id,
        'grade_level': tc.grade_level,
        'section': tc.section,
        'display_name': tc.display_name,
        'max_capacity': tc.max_capacity,
        'committed_count': tc.committed_count,
        'staged_count': staged_count
    }

def serialize_bulk_result(result):
    return {
        'assigned_count': result.assigned_count,
        'skipped_count': len(result.skipped),
        'skipped': [
            {'student_id': s['student_id'], 'reason': str(getattr(s['reason'], 'value', s['reason']))}
            for s in result.skipped
        ]
    }

def serialize_commit_result(result):
    return {
        'created_count': result.created_count,
        'failures': list(result.failures)
    }

def serialize_stats(stats):
    return asdict(stats)

def serialize_placement_log(entry):
    return {
        'id': entry.id,
        'action': entry.action,
        'school_year_id': entry.school_year_id,
        'student_id': entry.student_id,
        'class_id': entry.class_id,
        'acting_user_id': entry.acting_user_id,
        'details': entry.details,
        'created_at': entry.created_at.strftime("%Y-%m-%d %H:%M:%S") if entry.created_at else None
    }
