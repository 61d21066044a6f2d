from flask import Blueprint, current_app, abort, request, jsonify, send_file
from flask_login import login_required, current_user

from forms import (AssignStudentForm, BulkAssignForm, CandidateFilterForm, LockForm, RemovePlacementForm,
                   YearPairForm, YearPairQueryForm)
from models import PlacementLog, SchoolYear
from utils.eligibility import filter_candidates, filter_options
from utils.errors import PlacementError
from utils.export import PreviewExporter, resolve_export_path
from utils.lock_gate import LockGate
from utils.placement import PlacementEngine
from utils.serializers import (serialize_bulk_result, serialize_candidate, serialize_commit_result,
                               serialize_placement_log, serialize_school_year, serialize_stats,
                               serialize_target_class)

admin_bp = Blueprint('admin', __name__)


def acting_user_id():
    return getattr(current_user, 'admin_id', None)


@admin_bp.before_request
@login_required
def admin_only():
    if getattr(current_user, 'role', None) != 'admin':
        abort(403)


@admin_bp.errorhandler(PlacementError)
def handle_placement_error(error):
    current_app.logger.info("Placement request rejected: %s %s", type(error).__name__, error.details)
    return jsonify(error.to_dict()), error.status_code


def form_errors(form):
    return jsonify(success=False, errors=form.errors), 400


#--------------- Student Placement: reads ---------------
@admin_bp.route('/placement/school-years')
def placement_school_years():
    years = SchoolYear.query.order_by(SchoolYear.name.desc()).all()
    return jsonify(school_years=[serialize_school_year(y) for y in years])


@admin_bp.route('/placement/candidates')
def placement_candidates():
    form = CandidateFilterForm(formdata=request.args)
    if not form.validate():
        return form_errors(form)

    engine = PlacementEngine()
    source_id, target_id = form.source_year_id.data, form.target_year_id.data
    all_candidates = engine.list_candidates(source_id, target_id)
    staged = engine.staged_placements(source_id, target_id)

    candidates = filter_candidates(all_candidates, form.grade.data, form.section.data)

    return jsonify(
        candidates=[serialize_candidate(c, staged.get(c.student_id)) for c in candidates],
        filter_options=filter_options(all_candidates),
        locked=engine.is_locked(engine.session_key(source_id, target_id)),
        undo_depth=engine.undo_depth(source_id, target_id),
    )


@admin_bp.route('/placement/classes')
def placement_target_classes():
    form = YearPairQueryForm(formdata=request.args)
    if not form.validate():
        return form_errors(form)

    engine = PlacementEngine()
    staged = engine.staged_placements(form.source_year_id.data, form.target_year_id.data)
    staged_counts = {}
    for class_id in staged.values():
        staged_counts[class_id] = staged_counts.get(class_id, 0) + 1

    classes = engine.target_classes(form.target_year_id.data, request.args.get('grade') or None)
    return jsonify(classes=[serialize_target_class(c, staged_counts.get(c.class_id, 0)) for c in classes])


@admin_bp.route('/placement/stats')
def placement_stats():
    form = YearPairQueryForm(formdata=request.args)
    if not form.validate():
        return form_errors(form)
    stats = PlacementEngine().stats(form.source_year_id.data, form.target_year_id.data)
    return jsonify(serialize_stats(stats))


@admin_bp.route('/placement/distribution')
def placement_distribution():
    form = YearPairQueryForm(formdata=request.args)
    if not form.validate():
        return form_errors(form)
    return jsonify(PlacementEngine().class_distribution(form.source_year_id.data, form.target_year_id.data))


#--------------- Student Placement: staging ---------------
@admin_bp.route('/placement/bulk-assign', methods=['POST'])
def placement_bulk_assign():
    form = BulkAssignForm()
    if not form.validate_on_submit():
        return form_errors(form)

    result = PlacementEngine().bulk_assign(
        form.source_year_id.data, form.target_year_id.data,
        form.student_ids.data, form.target_class_id.data, acting_user_id()
    )
    return jsonify(success=True, **serialize_bulk_result(result))


@admin_bp.route('/placement/assign', methods=['POST'])
def placement_assign_student():
    form = AssignStudentForm()
    if not form.validate_on_submit():
        return form_errors(form)

    result = PlacementEngine().assign_student(
        form.source_year_id.data, form.target_year_id.data,
        form.student_id.data, form.target_class_id.data, acting_user_id()
    )
    return jsonify(result), (200 if result['success'] else 409)


@admin_bp.route('/placement/remove', methods=['POST'])
def placement_remove():
    form = RemovePlacementForm()
    if not form.validate_on_submit():
        return form_errors(form)

    removed = PlacementEngine().remove_staged(
        form.source_year_id.data, form.target_year_id.data,
        form.student_id.data, form.class_id.data, acting_user_id()
    )
    return jsonify(success=True, removed=removed)


@admin_bp.route('/placement/undo', methods=['POST'])
def placement_undo():
    form = YearPairForm()
    if not form.validate_on_submit():
        return form_errors(form)

    outcome = PlacementEngine().undo_last(form.source_year_id.data, form.target_year_id.data, acting_user_id())
    return jsonify(outcome)


#--------------- Student Placement: commit, lock, export ---------------
@admin_bp.route('/placement/commit', methods=['POST'])
def placement_commit():
    form = YearPairForm()
    if not form.validate_on_submit():
        return form_errors(form)

    result = PlacementEngine().commit(form.source_year_id.data, form.target_year_id.data, acting_user_id())
    return jsonify(success=not result.failures, **serialize_commit_result(result))


@admin_bp.route('/placement/lock', methods=['POST'])
def placement_lock():
    form = LockForm()
    if not form.validate_on_submit():
        return form_errors(form)

    result = LockGate().lock(form.target_year_id.data, acting_user_id())
    return jsonify(result), (200 if result['success'] else 409)


@admin_bp.route('/placement/export', methods=['POST'])
def placement_export():
    form = YearPairForm()
    if not form.validate_on_submit():
        return form_errors(form)

    try:
        result = PreviewExporter().export(form.source_year_id.data, form.target_year_id.data, acting_user_id())
    except OSError as e:
        current_app.logger.exception("Placement preview export failed")
        return jsonify(success=False, error=f"Export failed: {e}"), 500

    return jsonify(success=True, filename=result['filename'], record_count=result['record_count'])


@admin_bp.route('/placement/history/<int:school_year_id>')
def placement_history(school_year_id):
    limit = request.args.get('limit', 50, type=int)
    entries = (PlacementLog.query
               .filter_by(school_year_id=school_year_id)
               .order_by(PlacementLog.created_at.desc(), PlacementLog.id.desc())
               .limit(max(1, min(limit, 500)))
               .all())
    return jsonify(entries=[serialize_placement_log(e) for e in entries])


@admin_bp.route('/placement/download/<filename>')
def placement_download(filename):
    path = resolve_export_path(filename)
    if path is None:
        abort(404)
    return send_file(path, mimetype='text/csv', as_attachment=True, download_name=filename)
