import uvicorn
from vpn_gateway.main import app
from vpn_gateway.logging_utility import logger


if __name__=='__main__':
    settings = app.state.settings
    logger.info(f"Starting VPN Admin Gateway on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
