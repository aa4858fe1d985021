"""
Main application entry point for the PetSOS schedule agent.
"""

import uvicorn
from .api.app import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run("petsos_agent.main:app", host="0.0.0.0", port=8001)
