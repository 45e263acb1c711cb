"""Application configuration"""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""
    APP_NAME = "نظام تقييم المؤسسات الوقفية"
    APP_NAME_EN = "Waqf Institutions Evaluation"

    def __init__(self):
        self.SECRET_KEY = os.getenv('SECRET_KEY', '')
        self.DB_PATH = os.getenv('WAQF_DB_PATH', 'waqf.db')
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
        # Optional TTF with Arabic glyphs for PDF reports
        self.PDF_FONT_PATH = os.getenv('PDF_FONT_PATH', '')
        self.FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    @property
    def is_production(self) -> bool:
        return self.FLASK_ENV == 'production'
