#carpet_qr\core\config.py
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    BASE_URL: str = "http://localhost:8080"
    RESULT_PATH: str = "/qr-result"

    QR_WIDTH: int = 256
    BATCH_QR_WIDTH: int = 200
    QR_ERROR_CORRECTION: str = "M"
    QR_MARGIN: int = 1
    QR_DARK_COLOR: str = "#000000"
    QR_LIGHT_COLOR: str = "#FFFFFF"

    CATALOG_PATH: str = "./carpet_qr/data/catalog.json"
    CAMERA_ID: int = 0
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
