import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Paths
DATA_DIR = os.path.join(BASE_DIR, "data")
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))
QUESTION_BANK_FILE = os.getenv("QUESTION_BANK_FILE", os.path.join(DATA_DIR, "questions.txt"))
RESULT_FILE = os.getenv("RESULT_FILE", os.path.join(BASE_DIR, "exam_data.json"))
RESULT_DIR = os.getenv("RESULT_DIR", os.path.join(BASE_DIR, "results"))

# Server
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8080"))
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))  # 1 hour

# Question bank feed
QUESTION_BANK_URL = os.getenv("QUESTION_BANK_URL", f"http://localhost:{DEFAULT_PORT}/api/questions")
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "10"))

# Feed format: id|text|opt1|opt2|opt3|opt4|correct(1-based)|explanation|...
FIELD_DELIMITER = "|"
MIN_FIELDS = 8
OPTION_COUNT = 4
DEFAULT_EXPLANATION = "No explanation provided"

# Priority list: difficulty = (id % DIFFICULTY_LEVELS) + 1
DIFFICULTY_LEVELS = 10
PRIORITY_DEFAULT_COUNT = 5
PRIORITY_MAX_COUNT = 100

# Exam timing
EXAM_DURATION_SECONDS = int(os.getenv("EXAM_DURATION_SECONDS", "1800"))  # 30 minutes
TIMER_WARNING_SECONDS = int(os.getenv("TIMER_WARNING_SECONDS", "30"))
TICK_INTERVAL = 1.0
