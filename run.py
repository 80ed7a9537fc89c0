import uvicorn
from dotenv import load_dotenv
from adsync.config import Settings

# Load environment variables from .env
load_dotenv()

if __name__ == "__main__":
    settings = Settings.from_env()
    print(f"Starting adsync on http://{settings.host}:{settings.port}{settings.api_prefix}/health")
    uvicorn.run("adsync.main:create_app", factory=True, host=settings.host, port=settings.port)
