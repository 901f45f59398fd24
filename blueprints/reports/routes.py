from datetime import date

from flask import jsonify, g, request, Response

from blueprints.reports import reports_bp
from services.report_service import ReportService
from utils.permissions import group_required, capability_required, VIEW_REPORTS


@reports_bp.route('/')
@group_required
@capability_required(VIEW_REPORTS)
def index():
    """Report for ?period=1month|3months|6months|1year"""
    return jsonify(ReportService.build_report(g.group, request.args.get('period')))


@reports_bp.route('/export')
@group_required
@capability_required(VIEW_REPORTS)
def export():
    """Download the report as CSV"""
    today = date.today()
    report = ReportService.build_report(g.group, request.args.get('period'), today=today)
    return Response(
        ReportService.export_csv(report, group_name=g.group.name),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={ReportService.export_filename(today)}'},
    )
