import sys
import uvicorn
from ris_app.main import app

def run_http(port: int = 8000, reload: bool = False):
    """Run the HTTP server"""
    print(f"🚀 Starting HTTP server on port {port}...")
    uvicorn.run(
        "main:app",  # Use string import
        host="0.0.0.0",
        port=port,
        reload=reload
    )

if __name__ == "__main__":
    run_http(reload="--reload" in sys.argv)
