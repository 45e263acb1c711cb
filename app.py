"""
Waqf Evaluation - Endowment Institutions Evaluation, Compliance & Risk
Flask Application
"""

import io
import logging
import os
import secrets
from dataclasses import asdict
from datetime import date
from functools import wraps

from flask import Flask, request, redirect, url_for, session, jsonify, send_file

from waqf_eval.config import Config
from waqf_eval.constants import GOVERNORATES, OMAN_LOCATIONS, wilayats_for
from waqf_eval.exceptions import WaqfError, ImportFileError, BackupError, ValidationError
from waqf_eval.importers import parse_indicator_workbook, document_metadata
from waqf_eval.models import (
    ComplianceDraft, CustomRequirement, InstitutionDraft, RiskDraft, Settings, generate_id,
)
from waqf_eval.reports import render_report_pdf
from waqf_eval.scoring import assess_risk, calculate_risk_score
from waqf_eval.storage import RecordStore, SqliteBackend
from waqf_eval.waqf_manager import WaqfManager

logger = logging.getLogger(__name__)

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _get_stable_secret_key(config):
    """Get or create a stable secret key that survives server restarts."""
    if config.SECRET_KEY:
        return config.SECRET_KEY
    key_file = os.path.join(os.path.dirname(os.path.abspath(config.DB_PATH)), '.secret_key')
    try:
        if os.path.exists(key_file):
            with open(key_file, 'r') as f:
                key = f.read().strip()
                if len(key) >= 32:
                    return key
        key = secrets.token_hex(32)
        with open(key_file, 'w') as f:
            f.write(key)
        os.chmod(key_file, 0o600)
        return key
    except OSError as e:
        logger.warning("Could not persist secret key (%s), sessions reset on restart", e)
        return secrets.token_hex(32)


def _as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def _payload():
    """JSON body or form fields of the current request."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _confirmed():
    """Destructive operations need an explicit confirm flag."""
    value = request.args.get('confirm')
    if value is None:
        value = _payload().get('confirm', False)
    return _as_bool(value)


def _year_arg():
    year = request.args.get('year')
    return int(year) if year and year.isdigit() else None


def _form_year(value):
    """Cycle year posted in a form; missing means the current year."""
    if value in (None, ''):
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    raise ValidationError('Cycle year must be a number')


def _uploaded_file(field='file'):
    file = request.files.get(field)
    if file is None or not file.filename:
        return None
    return file


def _file_size(file):
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    return size


def _confirmation_required():
    return jsonify({'success': False, 'error': 'Confirmation required', 'confirm_required': True}), 409


def _not_found(what):
    return jsonify({'success': False, 'error': f'{what} not found'}), 404


def login_required(f):
    """Decorator to require login. Returns JSON 401 for API calls, redirect for pages."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'username' not in session:
            if request.method != 'GET' or request.is_json or request.headers.get('X-Requested-With') == 'XMLHttpRequest':
                return jsonify({'success': False, 'error': 'Session expired. Please login again.', 'session_expired': True}), 401
            return redirect(url_for('login'))
        return f(*args, **kwargs)
    return decorated_function


def create_app(config=None, store=None):
    """Build the application around an injected record store."""
    config = config or Config()
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    if store is None:
        store = RecordStore(SqliteBackend(config.DB_PATH))
    manager = WaqfManager(store)

    app = Flask(__name__)
    app.secret_key = _get_stable_secret_key(config)
    app.config['SESSION_COOKIE_SECURE'] = config.is_production
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['WAQF'] = config
    app.config['THEME'] = manager.get_settings().theme
    app.extensions['waqf_manager'] = manager

    def on_settings_changed(settings):
        app.config['THEME'] = settings.theme
        logger.debug("Theme switched to %s", settings.theme)

    store.subscribe(on_settings_changed)

    # ========================================================================
    # ERRORS
    # ========================================================================

    @app.errorhandler(WaqfError)
    def handle_waqf_error(error):
        return jsonify({'success': False, 'error': str(error)}), 400

    @app.errorhandler(404)
    def handle_unknown_path(error):
        """Unknown paths land on the dashboard."""
        return redirect(url_for('dashboard'))

    # ========================================================================
    # AUTH
    # ========================================================================

    @app.route('/login', methods=['GET', 'POST'])
    def login():
        """Username gate; any non-empty username and password opens a session."""
        if request.method == 'POST':
            data = _payload()
            username = (data.get('username') or '').strip()
            password = data.get('password') or ''
            if not username or not password:
                return jsonify({'success': False, 'error': 'Username and password are required'}), 400
            session.clear()
            session['username'] = username
            return jsonify({'success': True, 'username': username})
        return jsonify({'success': True, 'authenticated': 'username' in session, 'app': Config.APP_NAME})

    @app.route('/logout', methods=['GET', 'POST'])
    def logout():
        session.clear()
        return redirect(url_for('login'))

    # ========================================================================
    # DASHBOARD
    # ========================================================================

    @app.route('/')
    @login_required
    def dashboard():
        return jsonify({
            'success': True,
            'username': session['username'],
            'theme': app.config['THEME'],
            'dashboard': manager.get_dashboard(),
        })

    # ========================================================================
    # INSTITUTIONS
    # ========================================================================

    @app.route('/institutions', methods=['GET'])
    @login_required
    def institutions():
        search = request.args.get('search', '').strip()
        return jsonify({
            'success': True,
            'institutions': [i.to_dict() for i in manager.list_institutions(search)],
        })

    @app.route('/institutions', methods=['POST'])
    @login_required
    def save_institution():
        draft = InstitutionDraft.from_form(_payload())
        if draft.id and draft.documents is None:
            existing = manager.get_institution(draft.id)
            if existing is not None:
                draft.documents = existing.documents
                draft.created_at = draft.created_at or existing.created_at
        institution = manager.save_institution(draft)
        return jsonify({'success': True, 'institution': institution.to_dict()})

    @app.route('/institutions/<institution_id>', methods=['DELETE'])
    @login_required
    def delete_institution(institution_id):
        if not _confirmed():
            return _confirmation_required()
        if not manager.delete_institution(institution_id):
            return _not_found('Institution')
        return jsonify({'success': True})

    @app.route('/institutions/<institution_id>/documents', methods=['POST'])
    @login_required
    def upload_institution_document(institution_id):
        file = _uploaded_file()
        if file is None:
            return jsonify({'success': False, 'error': 'No file uploaded'}), 400
        document = document_metadata(file.filename, file.mimetype, _file_size(file))
        institution = manager.attach_document(institution_id, document)
        if institution is None:
            return _not_found('Institution')
        return jsonify({'success': True, 'document': document.to_dict()})

    @app.route('/institutions/<institution_id>/documents/<document_id>', methods=['DELETE'])
    @login_required
    def remove_institution_document(institution_id, document_id):
        if manager.remove_document(institution_id, document_id) is None:
            return _not_found('Institution')
        return jsonify({'success': True})

    @app.route('/locations')
    @login_required
    def locations():
        governorate = request.args.get('governorate')
        if governorate:
            return jsonify({'success': True, 'governorate': governorate, 'wilayats': wilayats_for(governorate)})
        return jsonify({'success': True, 'governorates': GOVERNORATES, 'wilayats': OMAN_LOCATIONS})

    # ========================================================================
    # EVALUATION & INDICATORS
    # ========================================================================

    @app.route('/evaluation')
    @login_required
    def evaluation():
        """Evaluation sheet of an institution, created on first visit."""
        institution_id = request.args.get('institution_id', '')
        grouped = manager.grouped_indicators()
        payload = {
            'success': True,
            'axes': {axis: [i.to_dict() for i in items] for axis, items in grouped.items()},
            'institutions': [{'id': i.id, 'name': i.name} for i in manager.list_institutions()],
        }
        if not institution_id:
            return jsonify(payload)
        if manager.get_institution(institution_id) is None:
            return _not_found('Institution')

        ev = manager.get_or_create_evaluation(institution_id, _year_arg())
        responses = manager.get_responses(ev.id)
        scores = [r.score for r in responses]
        payload.update({
            'evaluation': ev.to_dict(),
            'responses': {r.indicator_id: r.to_dict() for r in responses},
            'performance': {
                'low': sum(1 for s in scores if s <= 2),
                'medium': sum(1 for s in scores if s == 3),
                'high': sum(1 for s in scores if s >= 4),
            },
        })
        return jsonify(payload)

    @app.route('/evaluation/<evaluation_id>/responses', methods=['POST'])
    @login_required
    def save_response(evaluation_id):
        data = _payload()
        score = data.get('score')
        # form fields arrive as text; JSON numbers are passed through unchanged
        if isinstance(score, str) and score.strip().isdigit():
            score = int(score)
        response = manager.save_response(
            evaluation_id, data.get('indicator_id', ''), score, data.get('evidence_text', '')
        )
        return jsonify({'success': True, 'response': response.to_dict()})

    @app.route('/evaluation/<evaluation_id>/finalize', methods=['POST'])
    @login_required
    def finalize_evaluation(evaluation_id):
        ev = manager.finalize_evaluation(evaluation_id)
        if ev is None:
            return _not_found('Evaluation')
        return jsonify({'success': True, 'evaluation': ev.to_dict()})

    @app.route('/evaluation/<evaluation_id>/attachments', methods=['POST'])
    @login_required
    def upload_evaluation_attachment(evaluation_id):
        file = _uploaded_file()
        if file is None:
            return jsonify({'success': False, 'error': 'No file uploaded'}), 400
        document = document_metadata(file.filename, file.mimetype, _file_size(file))
        if manager.attach_evaluation_document(evaluation_id, document) is None:
            return _not_found('Evaluation')
        return jsonify({'success': True, 'document': document.to_dict()})

    @app.route('/evaluation/<evaluation_id>/attachments/<document_id>', methods=['DELETE'])
    @login_required
    def remove_evaluation_attachment(evaluation_id, document_id):
        if manager.remove_evaluation_document(evaluation_id, document_id) is None:
            return _not_found('Evaluation')
        return jsonify({'success': True})

    @app.route('/indicators', methods=['GET'])
    @login_required
    def indicators():
        return jsonify({'success': True, 'indicators': [i.to_dict() for i in manager.get_indicators()]})

    @app.route('/indicators', methods=['POST'])
    @login_required
    def add_indicator():
        data = _payload()
        indicator = manager.add_indicator(data.get('axis', ''), data.get('text', ''))
        return jsonify({'success': True, 'indicator': indicator.to_dict()})

    @app.route('/indicators/<indicator_id>', methods=['DELETE'])
    @login_required
    def delete_indicator(indicator_id):
        if not _confirmed():
            return _confirmation_required()
        if not manager.delete_indicator(indicator_id):
            return _not_found('Indicator')
        return jsonify({'success': True})

    @app.route('/indicators/import', methods=['POST'])
    @login_required
    def import_indicators():
        """Replace the whole catalog from the first sheet of an uploaded workbook."""
        file = _uploaded_file()
        if file is None:
            return jsonify({'success': False, 'error': 'No file uploaded'}), 400
        if not _confirmed():
            return _confirmation_required()
        try:
            imported = parse_indicator_workbook(io.BytesIO(file.read()))
        except ImportFileError as e:
            logger.warning("Indicator import failed: %s", e)
            return jsonify({'success': False, 'error': str(e)}), 400
        manager.replace_indicators(imported)
        return jsonify({'success': True, 'count': len(imported)})

    # ========================================================================
    # COMPLIANCE & RISK REGISTER
    # ========================================================================

    def _compliance_payload(draft):
        risks = manager.list_risks(draft.institution_id)
        return {
            'success': True,
            'record': asdict(draft),
            'risk': calculate_risk_score(draft).to_dict(),
            'risks': [_risk_payload(r) for r in risks],
        }

    def _risk_payload(risk):
        assessment = assess_risk(risk)
        return dict(risk.to_dict(), assessment=assessment.to_dict() if assessment else None)

    @app.route('/compliance')
    @login_required
    def compliance():
        institution_id = request.args.get('institution_id', '')
        if not institution_id:
            return jsonify({
                'success': True,
                'institutions': [{'id': i.id, 'name': i.name} for i in manager.list_institutions()],
            })
        return jsonify(_compliance_payload(manager.get_compliance(institution_id, _year_arg())))

    @app.route('/compliance', methods=['POST'])
    @login_required
    def save_compliance():
        data = _payload()
        institution_id = data.get('institution_id', '')
        year = _form_year(data.get('cycle_year'))
        draft = manager.get_compliance(institution_id, year)
        for field in ('institution_status', 'board_status', 'board_end_date', 'followup_actions', 'notes'):
            if field in data:
                setattr(draft, field, data[field])
        for field in ('has_executive_management', 'has_auditor_company',
                      'has_minutes_prev_year', 'has_financial_report_prev_year'):
            if field in data:
                setattr(draft, field, _as_bool(data[field]))
        if isinstance(data.get('custom_requirements'), list):
            draft.custom_requirements = [
                CustomRequirement(id=r.get('id') or generate_id(), text=r.get('text', ''), met=_as_bool(r.get('met', False)))
                for r in data['custom_requirements']
            ]
        record = manager.save_compliance(draft)
        return jsonify(_compliance_payload(ComplianceDraft.from_record(record)))

    @app.route('/compliance/requirements', methods=['POST'])
    @login_required
    def add_requirement():
        data = _payload()
        draft = manager.get_compliance(data.get('institution_id', ''), _year_arg())
        if draft.add_requirement(data.get('text', '')) is None:
            return jsonify({'success': False, 'error': 'Requirement text is required'}), 400
        record = manager.save_compliance(draft)
        return jsonify(_compliance_payload(ComplianceDraft.from_record(record)))

    @app.route('/compliance/requirements/<requirement_id>/toggle', methods=['POST'])
    @login_required
    def toggle_requirement(requirement_id):
        draft = manager.get_compliance(_payload().get('institution_id', ''), _year_arg())
        draft.toggle_requirement(requirement_id)
        record = manager.save_compliance(draft)
        return jsonify(_compliance_payload(ComplianceDraft.from_record(record)))

    @app.route('/compliance/requirements/<requirement_id>', methods=['DELETE'])
    @login_required
    def remove_requirement(requirement_id):
        draft = manager.get_compliance(request.args.get('institution_id', ''), _year_arg())
        draft.remove_requirement(requirement_id)
        record = manager.save_compliance(draft)
        return jsonify(_compliance_payload(ComplianceDraft.from_record(record)))

    @app.route('/compliance/risks', methods=['POST'])
    @login_required
    def add_risk():
        data = _payload()
        risk = manager.add_risk(RiskDraft(
            institution_id=data.get('institution_id', ''),
            risk_title=data.get('risk_title'),
            category=data.get('category'),
            probability=data.get('probability'),
            impact=data.get('impact'),
            mitigation_plan=data.get('mitigation_plan'),
        ))
        return jsonify({'success': True, 'risk': _risk_payload(risk)})

    @app.route('/compliance/risks/<risk_id>', methods=['PATCH', 'POST'])
    @login_required
    def update_risk_status(risk_id):
        risk = manager.set_risk_status(risk_id, _payload().get('status', ''))
        if risk is None:
            return _not_found('Risk')
        return jsonify({'success': True, 'risk': _risk_payload(risk)})

    @app.route('/compliance/risks/<risk_id>', methods=['DELETE'])
    @login_required
    def delete_risk(risk_id):
        if not _confirmed():
            return _confirmation_required()
        if not manager.delete_risk(risk_id):
            return _not_found('Risk')
        return jsonify({'success': True})

    # ========================================================================
    # REPORTS & IMPROVEMENT PLAN
    # ========================================================================

    @app.route('/reports')
    @app.route('/improvements')
    @login_required
    def reports():
        institution_id = request.args.get('institution_id', '')
        if not institution_id:
            return jsonify({
                'success': True,
                'institutions': [{'id': i.id, 'name': i.name} for i in manager.list_institutions()],
            })
        report = manager.get_report(institution_id)
        if report is None:
            return jsonify({'success': True, 'report': None})
        return jsonify({'success': True, 'report': report.to_dict()})

    @app.route('/reports/<institution_id>/pdf')
    @login_required
    def report_pdf(institution_id):
        report = manager.get_report(institution_id)
        if report is None:
            return _not_found('Report')
        pdf = render_report_pdf(report, manager.get_settings(), font_path=config.PDF_FONT_PATH or None)
        return send_file(
            io.BytesIO(pdf),
            mimetype='application/pdf',
            as_attachment=True,
            download_name=f"Report-{report.institution.name}.pdf",
        )

    @app.route('/improvements/<item_id>', methods=['PATCH', 'POST'])
    @login_required
    def update_improvement(item_id):
        data = _payload()
        item = manager.update_improvement(
            item_id,
            status=data.get('status'),
            owner=data.get('owner'),
            due_date=data.get('due_date'),
            notes=data.get('notes'),
        )
        if item is None:
            return _not_found('Improvement item')
        return jsonify({'success': True, 'item': item.to_dict()})

    # ========================================================================
    # SETTINGS & BACKUP
    # ========================================================================

    @app.route('/settings', methods=['GET'])
    @login_required
    def settings():
        return jsonify({'success': True, 'settings': manager.get_settings().to_dict(), 'theme': app.config['THEME']})

    @app.route('/settings', methods=['POST'])
    @login_required
    def save_settings():
        data = _payload()
        current = manager.get_settings()
        updated = Settings(
            org_name=data.get('orgName', current.org_name),
            manager_name=data.get('managerName', current.manager_name),
            dark_mode=_as_bool(data.get('darkMode', current.dark_mode)),
        )
        manager.save_settings(updated)
        return jsonify({'success': True, 'settings': updated.to_dict(), 'theme': app.config['THEME']})

    @app.route('/settings/backup')
    @login_required
    def export_backup():
        data = store.export_backup_json().encode('utf-8')
        return send_file(
            io.BytesIO(data),
            mimetype='application/json',
            as_attachment=True,
            download_name=f"waqf-backup-{date.today().isoformat()}.json",
        )

    @app.route('/settings/restore', methods=['POST'])
    @login_required
    def import_backup():
        file = _uploaded_file('backup')
        raw = file.read() if file is not None else request.get_data()
        try:
            keys = store.import_backup(raw)
        except BackupError as e:
            logger.warning("Backup restore failed: %s", e)
            return jsonify({'success': False, 'error': str(e)}), 400
        return jsonify({'success': True, 'keys': keys})

    @app.route('/settings/clear', methods=['POST'])
    @login_required
    def clear_data():
        if not _confirmed():
            return _confirmation_required()
        store.clear()
        return jsonify({'success': True})

    return app


if __name__ == '__main__':
    application = create_app()
    port = int(os.getenv('PORT', '5000'))
    application.run(host='0.0.0.0', port=port, debug=not application.config['WAQF'].is_production)
