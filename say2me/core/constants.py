import re

# --- Pages / Usernames ---
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
PAGE_URL_PREFIX = "/p/"

# 랜덤 닉네임 생성용 단어 목록 (8 x 8 x 1000 = 64,000 조합)
USERNAME_ADJECTIVES = ["happy", "lucky", "sunny", "clever", "bright", "kind", "wise", "brave"]
USERNAME_NOUNS = ["panda", "tiger", "eagle", "dolphin", "lion", "wolf", "bear", "fox"]
USERNAME_NUMBER_MAX = 999

# --- Messages ---
MESSAGE_MIN_LENGTH = 1
MESSAGE_MAX_LENGTH = 500
MESSAGE_PAGE_SIZE = 20
# OFFSET은 signed 64-bit 로 바인딩되므로 그 이상인 페이지는 조회하지 않음
MESSAGE_MAX_OFFSET = 2**63 - 1

# 글로벌 피드 보관 한도 정리용 advisory lock 키
GLOBAL_FEED_LOCK_KEY = 0x5A32_4D45

# --- Feeds (metrics label) ---
FEED_GLOBAL = "global"
FEED_PAGE = "page"

# --- Privacy ---
# 요청이 앱에 도달하기 전에 제거하는 식별성 헤더
STRIPPED_REQUEST_HEADERS = ("user-agent", "x-forwarded-for", "x-real-ip")

# --- Response Messages ---
MSG_PAGE_CREATED = "Page created"
MSG_MESSAGE_SAVED = "Message saved"
MSG_VALIDATION_FAILED = "Validation failed"
MSG_INTERNAL_ERROR = "Internal server error"
MSG_TRY_AGAIN = "Please try again later"
