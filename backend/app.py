"""
Backend API for the weekly calendar
Persists calendar events for the client's optimistic event store
"""

import logging
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from database import Database, EventRepository
from errors import ConflictError, ValidationError
from settings import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')

REQUIRED_FIELDS_ERROR = 'Missing required fields: id, title, or color'


def _repository() -> EventRepository:
    return current_app.extensions['calendar_db'].connect()


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


def _has_required_fields(data) -> bool:
    return isinstance(data, dict) and all(data.get(key) for key in ('id', 'title', 'color'))


@api.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({'success': True, 'status': 'ok', 'message': 'Calendar API is running'})

# Event CRUD Operations

@api.route('/events', methods=['GET'])
def get_events():
    """Get all calendar events, newest first"""
    try:
        events = _repository().all()
        logger.debug("Returning %d events", len(events))
        return jsonify({'success': True, 'data': events})
    except Exception as e:
        logger.exception("Error fetching events")
        return _error(str(e) or 'Failed to fetch events', 500)


@api.route('/events/<event_id>', methods=['GET'])
def get_event(event_id):
    """Get a specific calendar event"""
    try:
        event = _repository().get(event_id)
        if event is None:
            return _error('Event not found', 404)
        return jsonify({'success': True, 'data': event})
    except Exception as e:
        logger.exception("Error fetching event %s", event_id)
        return _error(str(e) or 'Failed to fetch event', 500)


@api.route('/events', methods=['POST'])
def create_event():
    """Create a new calendar event"""
    data = request.get_json(silent=True)
    if not _has_required_fields(data):
        return _error(REQUIRED_FIELDS_ERROR, 400)

    try:
        event = _repository().insert(data)
        logger.info("Created event %s", event['id'])
        return jsonify({'success': True, 'data': event}), 201
    except ConflictError:
        return _error('Event with this ID already exists', 409)
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("Error creating event")
        return _error(str(e) or 'Failed to create event', 500)


@api.route('/events/<event_id>', methods=['PUT'])
def update_event(event_id):
    """Update an existing calendar event; the id itself never changes"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error('Request body must be a JSON object', 400)
    data.pop('id', None)
    data.pop('_id', None)

    try:
        event = _repository().update(event_id, data)
        if event is None:
            return _error('Event not found', 404)
        return jsonify({'success': True, 'data': event})
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("Error updating event %s", event_id)
        return _error(str(e) or 'Failed to update event', 500)


@api.route('/events/<event_id>', methods=['DELETE'])
def delete_event(event_id):
    """Delete a calendar event"""
    try:
        event = _repository().delete(event_id)
        if event is None:
            return _error('Event not found', 404)
        logger.info("Deleted event %s", event_id)
        return jsonify({'success': True, 'data': event})
    except Exception as e:
        logger.exception("Error deleting event %s", event_id)
        return _error(str(e) or 'Failed to delete event', 500)

# Bulk import

@api.route('/migrate', methods=['POST'])
def migrate_events():
    """
    Import a batch of events, skipping ids that already exist

    Responds 201 when every new event was stored, 207 when only some were,
    and 200 when there was nothing new to store.
    """
    body = request.get_json(silent=True)
    events = body.get('events') if isinstance(body, dict) else None
    if not isinstance(events, list):
        return _error('Expected an array of events', 400)

    if not events:
        return jsonify({'success': True, 'message': 'No events to migrate', 'migrated': 0, 'skipped': 0})

    if not all(_has_required_fields(event) for event in events):
        return _error('Each event must have id, title, and color', 400)

    try:
        repository = _repository()
        existing_ids = repository.existing_ids(event['id'] for event in events)
        new_events = [event for event in events if event['id'] not in existing_ids]

        if not new_events:
            return jsonify({
                'success': True,
                'message': 'All events already exist in database',
                'migrated': 0,
                'skipped': len(events),
            })

        inserted, failures = repository.insert_many(new_events)
    except Exception as e:
        logger.exception("Error migrating events")
        return _error(str(e) or 'Failed to migrate events', 500)

    if failures:
        logger.warning("Migration failures: %s", '; '.join(failures))
        if not inserted:
            return _error(f'Failed to migrate events: {failures[0]}', 500)
        return jsonify({
            'success': True,
            'message': f'Partially migrated {len(inserted)} events',
            'migrated': len(inserted),
            'skipped': len(existing_ids),
            'error': 'Some events failed to migrate',
        }), 207

    return jsonify({
        'success': True,
        'message': f'Successfully migrated {len(inserted)} events',
        'migrated': len(inserted),
        'skipped': len(events) - len(inserted),
        'data': inserted,
    }), 201


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> Flask:
    """
    Build the Flask application

    Args:
        settings: Configuration; read from the environment when omitted
        database: Event store handle; one is built from settings when omitted
    """
    settings = settings or load_settings()

    app = Flask(__name__)
    app.secret_key = settings.secret_key

    CORS(app,
         resources={
             r"/api/*": {
                 "origins": settings.cors_origins,
                 "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                 "allow_headers": ["Content-Type", "Authorization"],
             }
         })

    app.extensions['calendar_db'] = database or Database(settings.store_path)
    app.register_blueprint(api)
    return app


if __name__ == '__main__':
    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    try:
        app.run(debug=True, host='0.0.0.0', port=settings.port)
    finally:
        app.extensions['calendar_db'].close()
