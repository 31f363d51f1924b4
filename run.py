# run.py
import os
from authenledger.app import create_app

# Starts the development server without relying on 'flask run' discovery.

if __name__ == "__main__":
    os.environ.setdefault('FLASK_APP', 'authenledger.app')
    config_name = os.environ.get('FLASK_CONFIG', 'development')

    app = create_app(config_name)

    print("=" * 60)
    print(f">>> Starting AuthenLedger API ({config_name})")
    print(f">>> Listening on http://0.0.0.0:{os.environ.get('PORT', 5000)}")
    print("=" * 60)

    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
