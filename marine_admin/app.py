from datetime import datetime, date
import logging
import os
import secrets
from functools import wraps
from flask import Flask, render_template, request, flash, redirect, g, url_for, jsonify
from flask_debugtoolbar import DebugToolbarExtension
from flask_httpauth import HTTPBasicAuth
from werkzeug.security import generate_password_hash, check_password_hash
from marine_admin.courses import course_service, error_utils, scheduler
from marine_admin.courses import course_utils as util
from marine_admin.courses.slot import DAYS_OF_WEEK, parse_bool
logger = logging.getLogger(__name__)

COURSE_STATUSES = ['active', 'inactive']


def create_app():
    app = Flask(__name__)
    app.secret_key = secrets.token_hex(32) #256 bit
    app.config['SECRET_KEY'] = app.secret_key
    production = os.environ.get('FLASK_ENV') == 'production'
    app.config['MARINE_API_URL'] = os.environ.get('MARINE_API_URL', course_service.DEFAULT_API_URL)
    app.config['MARINE_API_TOKEN'] = os.environ.get('MARINE_API_TOKEN')
    app.config['MARINE_API_TIMEOUT'] = float(os.environ.get('MARINE_API_TIMEOUT', course_service.DEFAULT_TIMEOUT))
    # Mock data is for offline development, off in production unless asked for
    fallback_default = 'false' if production else 'true'
    app.config['MOCK_FALLBACK'] = os.environ.get('MOCK_FALLBACK', fallback_default).lower() in ('1', 'true', 'yes')
    if not production:
        app.config["DEBUG_TB_INTERCEPT_REDIRECTS"] = False  # Prevents redirect issues
    return app

app = create_app()
# Set to make Flask debug toolbar work
if not os.environ.get('FLASK_ENV') == 'production':
    app.debug=True
auth = HTTPBasicAuth()


# Must set this in prod
prod_hash = os.getenv('HASH_ADMIN')

if prod_hash:
    users = {
        "admin": generate_password_hash(prod_hash)
    }
else: # For dev
    users = {
        "admin": generate_password_hash('secret')
    }

@auth.verify_password
def verify_password(username, password):
    if username in users and check_password_hash(users.get(username), password):
        return username

# Creates g.api within the request context so each request gets one API client
def instantiate_course_service(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.api = course_service.CourseService.from_config(app.config)
        return f(*args, **kwargs)
    return decorated_function

@app.route('/')
def home():
    return redirect('/courses')

@app.route("/courses", methods=['GET'])
@auth.login_required
@instantiate_course_service
def get_courses():
    level = request.args.get('level', 'all')
    status = request.args.get('status', 'all')
    search = request.args.get('search', '').strip()
    # The error handler redirects here, so failures must render instead of redirecting
    try:
        courses = g.api.list_courses(level=level, status=status, search=search)
    except error_utils.CourseApiError as e:
        logger.error(f"Loading courses failed: {e.message}")
        flash("Failed to load courses.", "error")
        courses = []
    try:
        stats = g.api.get_stats()
    except error_utils.CourseApiError as e:
        logger.error(f"Loading course stats failed: {e.message}")
        flash("Could not load course statistics.", "error")
        stats = dict.fromkeys(course_service.STATS_KEYS, 0)
    return render_template('courses.html', courses=courses, stats=stats, level=level, status=status, search=search,
                           levels=util.COURSE_LEVELS, statuses=COURSE_STATUSES)

def _render_course_form(form_data, course_id=None):
    try:
        categories = g.api.list_categories()
    except error_utils.CourseApiError as e:
        logger.error(f"Loading categories failed: {e.message}")
        flash("Failed to load categories.", "error")
        categories = []
    return render_template('course_form.html', form_data=form_data, course_id=course_id, categories=categories,
                           levels=util.COURSE_LEVELS, currencies=util.CURRENCIES)

@app.route("/courses/new", methods=['GET'])
@auth.login_required
@instantiate_course_service
def new_course():
    return _render_course_form(dict(util.DEFAULT_COURSE_FORM))

@app.route("/courses/<course_id>/edit", methods=['GET'])
@auth.login_required
@instantiate_course_service
def edit_course(course_id):
    return _render_course_form(util.form_from_course(g.api.get_course(course_id)), course_id)

def _submit_course(course_id=None):
    """
    Validates the course form and creates or updates the course.
    Invalid or rejected input re-renders the form with what the admin typed.
    """
    course_data = util.parse_course_form(request.form)
    errors = util.validate_course_input(course_data)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render_course_form(course_data, course_id)

    try:
        if course_id:
            g.api.update_course(course_id, course_data)
            flash("Course updated successfully", "success")
            return redirect(url_for('get_course_detail', course_id=course_id))
        created = g.api.create_course(course_data)
    except error_utils.CourseApiError as e:
        flash(f"Failed to save course: {e.message}", "error")
        return _render_course_form(course_data, course_id)

    flash("Course created successfully", "success")
    new_id = created.get('id') if isinstance(created, dict) else None
    if new_id:
        return redirect(url_for('get_course_detail', course_id=new_id))
    return redirect(url_for('get_courses'))

@app.route("/courses", methods=['POST'])
@auth.login_required
@instantiate_course_service
def create_course():
    return _submit_course()

@app.route("/courses/<course_id>/edit", methods=['POST'])
@auth.login_required
@instantiate_course_service
def update_course(course_id):
    return _submit_course(course_id)

@app.route("/courses/<course_id>/delete", methods=['POST'])
@auth.login_required
@instantiate_course_service
def delete_course(course_id):
    try:
        g.api.delete_course(course_id)
    except error_utils.CourseApiError as e:
        flash(f"Failed to delete course: {e.message}", "error")
    else:
        flash("Course deleted", "success")
    return redirect(url_for('get_courses'))

@app.route("/courses/<course_id>/publish", methods=['POST'])
@auth.login_required
@instantiate_course_service
def publish_course(course_id):
    try:
        g.api.publish_course(course_id)
    except error_utils.CourseApiError as e:
        flash(f"Failed to publish course: {e.message}", "error")
    else:
        flash("Course published. It is now active and visible", "success")
    return redirect(url_for('get_courses'))

@app.route("/courses/<course_id>/unpublish", methods=['POST'])
@auth.login_required
@instantiate_course_service
def unpublish_course(course_id):
    try:
        g.api.unpublish_course(course_id)
    except error_utils.CourseApiError as e:
        flash(f"Failed to unpublish course: {e.message}", "error")
    else:
        flash("Course unpublished. It is now inactive", "success")
    return redirect(url_for('get_courses'))

# The form posts the value the course should end up with
@app.route("/courses/<course_id>/featured", methods=['POST'])
@auth.login_required
@instantiate_course_service
def set_course_featured(course_id):
    featured = parse_bool(request.form.get('featured'))
    try:
        g.api.set_featured(course_id, featured)
    except error_utils.CourseApiError as e:
        flash(f"Failed to update course: {e.message}", "error")
    else:
        flash("Course marked as featured" if featured else "Course removed from featured", "success")
    return redirect(url_for('get_courses'))

def _render_course_detail(course_id, form_data=None, editing_id=None):
    now = datetime.now()
    filter_criterion = request.args.get('filter', scheduler.FILTER_ALL)
    sort_criterion = request.args.get('sort', scheduler.SORT_BY_DATE)
    month = scheduler.parse_month(request.args.get('month')) or now.date().replace(day=1)

    course = g.api.get_course(course_id)
    slots = g.api.list_availability(course_id)

    ordered_slots = scheduler.filter_and_sort(slots, now, filter_criterion, sort_criterion)
    month_grid = scheduler.build_month_grid(month, slots, filter_criterion, now)
    statuses = {slot.id: scheduler.derive_status(slot, now) for slot in slots}

    editing_slot = next((slot for slot in slots if slot.id == editing_id), None)
    if editing_id and not editing_slot:
        flash("That availability slot no longer exists.", "error")
    if form_data is None:
        form_data = util.form_from_slot(editing_slot) if editing_slot else dict(util.DEFAULT_SLOT_FORM)

    return render_template('course_detail.html', course=course, slots=ordered_slots, total_slots=len(slots),
                           statuses=statuses, month=month, month_grid=month_grid,
                           # Monday-first grid, pad the first week to line up weekdays
                           leading_blanks=month.weekday(),
                           prev_month=scheduler.shift_month(month, -1), next_month=scheduler.shift_month(month, 1),
                           filter_criterion=filter_criterion, sort_criterion=sort_criterion,
                           filter_criteria=scheduler.FILTER_CRITERIA, sort_criteria=scheduler.SORT_CRITERIA,
                           editing_slot=editing_slot, form_data=form_data, days_of_week=DAYS_OF_WEEK)

# Course detail page: availability list, month calendar and the add / edit slot form
@app.route("/courses/<course_id>", methods=['GET'])
@auth.login_required
@instantiate_course_service
def get_course_detail(course_id):
    # ?edit=<slot_id> pre-fills the form with that slot
    return _render_course_detail(course_id, editing_id=request.args.get('edit'))

# Used by the calendar when a day is clicked
@app.route("/courses/<course_id>/calendar/<day>", methods=['GET'])
@auth.login_required
@instantiate_course_service
def get_slots_for_day(course_id, day):
    try:
        selected_day = date.fromisoformat(day)
    except ValueError:
        return jsonify({"error": "Invalid date. Use YYYY-MM-DD"}), 400

    now = datetime.now()
    filter_criterion = request.args.get('filter', scheduler.FILTER_ALL)
    slots = scheduler.filter_slots(g.api.list_availability(course_id), now, filter_criterion)
    matching = scheduler.slots_for_date(slots, selected_day)
    return jsonify({
        "date": selected_day.isoformat(),
        "slots": [{"id": slot.id, "status": scheduler.derive_status(slot, now), "spotsBooked": slot.spots_booked,
                   **slot.to_payload()} for slot in matching],
    })

def _submit_availability(course_id, slot_id=None):
    """
    Validates the slot form and creates or updates the slot.
    Invalid or rejected input re-renders the page with the form holding what the admin typed.
    """
    slot_data = util.parse_availability_form(request.form)
    errors = util.validate_availability_input(slot_data)
    if errors:
        for message in errors:
            flash(message, "error")
        return _render_course_detail(course_id, form_data=slot_data, editing_id=slot_id)

    try:
        if slot_id:
            g.api.update_availability(course_id, slot_id, slot_data)
            flash("Availability updated successfully", "success")
        else:
            g.api.create_availability(course_id, slot_data)
            flash("Availability slot created successfully", "success")
    except error_utils.CourseApiError as e:
        flash(f"Failed to save availability: {e.message}", "error")
        return _render_course_detail(course_id, form_data=slot_data, editing_id=slot_id)
    return redirect(url_for('get_course_detail', course_id=course_id))

@app.route("/courses/<course_id>/availability", methods=['POST'])
@auth.login_required
@instantiate_course_service
def create_availability(course_id):
    return _submit_availability(course_id)

@app.route("/courses/<course_id>/availability/<slot_id>", methods=['POST'])
@auth.login_required
@instantiate_course_service
def update_availability(course_id, slot_id):
    return _submit_availability(course_id, slot_id)

@app.route("/courses/<course_id>/availability/<slot_id>/delete", methods=['POST'])
@auth.login_required
@instantiate_course_service
def delete_availability(course_id, slot_id):
    try:
        g.api.delete_availability(course_id, slot_id)
    except error_utils.CourseApiError as e:
        flash(f"Failed to delete availability: {e.message}", "error")
    else:
        flash("Availability slot deleted", "success")
    return redirect(url_for('get_course_detail', course_id=course_id))

@app.errorhandler(404)
def error_handler(error):
    flash(f"An error occurred.", "error")
    return redirect("/courses")

# Handle a failed API call while loading a course page
@app.errorhandler(error_utils.CourseApiError)
def handle_bad_api_call(error):
    logger.error(f"Course API call failed: {error.message} (status {error.status_code})")
    if error.status_code == 404:
        flash("Course not found.", "error")
    else:
        flash("Failed to load course. Please re-try.", "error")
    return redirect("/courses")

# A record without an id can't be edited or deleted, refuse to render it
@app.errorhandler(error_utils.MissingIdentifierError)
def handle_missing_identifier(error):
    logger.error(f"Availability record without id: {error.record}")
    flash("Availability data from the server is missing identifiers. Please contact support.", "error")
    return redirect("/courses")

if __name__ == '__main__':
    # production
    if os.environ.get('FLASK_ENV') == 'production':
       app.run(debug=False)
    else:
       toolbar = DebugToolbarExtension(app)
       app.run(debug=True, port=5003)
