#!/usr/bin/env python3
import os
import sys

print("=== Starting Rent Tracker ===")
print(f"Python version: {sys.version}")
print(f"Current working directory: {os.getcwd()}")

data_dir = os.environ.get('DATA_DIR', 'data')


def _ensure_dir(path: str):
    """Create a directory without aborting startup."""
    directory = os.path.abspath(path)
    if os.path.exists(directory):
        return
    try:
        print(f"⚠️  Creating directory: {directory}")
        os.makedirs(directory, exist_ok=True)
    except PermissionError:
        print(f"❌ No permission to create {directory}, check the mount owner.")
    except OSError as exc:
        print(f"❌ Could not create directory {directory}: {exc}")


for raw_dir in [data_dir, 'logs']:
    _ensure_dir(raw_dir)

try:
    from rent_tracker import create_app
    from rent_tracker.models import Property, User

    app = create_app()

    with app.app_context():
        users_count = User.query.count()
        if users_count == 0:
            print("⚠️  No users found - register one via POST /auth/register")
        else:
            print(f"✅ Found {users_count} users tracking {Property.query.count()} properties")

        if not app.config.get('CRON_SECRET'):
            print("⚠️  CRON_SECRET is not set - /api/cron/check-rent will refuse every request")

    if __name__ == '__main__':
        port = int(os.environ.get('PORT', 5000))
        print(f"🚀 Starting Flask server on port {port}...")
        print(f"📊 Access the API at: http://localhost:{port}/api")
        app.run(host='0.0.0.0', port=port, debug=False)

except Exception as e:
    print(f"❌ Failed to start app: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
