import uvicorn
from digipay.app import app
from digipay.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "digipay.app:app",
        host="0.0.0.0",
        port=3090,
        reload=settings.DEBUG
    )
