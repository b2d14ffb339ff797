"""
MediVault - REST API Server
Run with: python api_server.py
"""

from medivault.api.app import main

if __name__ == "__main__":
    main()
