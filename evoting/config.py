# evoting/config.py
# Central place for settings and constants, read from the environment / .env
import os

from dotenv import load_dotenv

load_dotenv()

# --- Security & JWT ---
# In production, always set SECRET_KEY in the environment
SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# --- Storage ---
# "mongo" for MongoDB, "file" for the JSON dummy DB used in development
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mongo")
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "voting_app")
# Multi-document transactions need a replica set; standalone servers fall back
# to the guarded conditional update
MONGO_TRANSACTIONS = os.getenv("MONGO_TRANSACTIONS", "false").lower() == "true"
DUMMY_DB_PATH = os.getenv("DUMMY_DB_PATH", "data/dummy_db.json")

USERS_COLLECTION_NAME = "users"
CANDIDATES_COLLECTION_NAME = "candidates"
REVIEWS_COLLECTION_NAME = "reviews"

# --- Account rules ---
AADHAR_LENGTH = 12
MOBILE_LENGTH = 10
MIN_VOTER_AGE = 18
MIN_CANDIDATE_AGE = 25
MIN_PASSWORD_LENGTH = 6
MIN_REVIEW_LENGTH = 10

# --- CORS ---
FRONTEND_URL = os.getenv("FRONTEND_URL", "*")

# --- Client ---
API_URL = os.getenv("API_URL", "http://localhost:8000")
COUNTRY_CODE = os.getenv("OTP_COUNTRY_CODE", "+91")
OTP_RESEND_COOLDOWN_SECONDS = int(os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "60"))
OTP_SESSION_TTL_SECONDS = int(os.getenv("OTP_SESSION_TTL_SECONDS", "300"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
OTP_CODE_LENGTH = 6
