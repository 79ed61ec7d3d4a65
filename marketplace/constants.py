# Firestore collections
USERS = "users"
PODCASTS = "podcasts"
COLLABORATIONS = "collaborations"
GUEST_WISHLISTS = "guestWishlists"
PODCAST_WISHLISTS = "podcastGuestWishlists"
GUEST_INVITES = "guestInvites"
MATCHES = "matches"
NOTIFICATIONS = "notifications"
CLAIMS = "claims"
REPORTS = "reports"
FEEDBACK = "collaborationFeedback"
LEGEND_APPLICATIONS = "legend_applications"
REMINDERS = "reminders"
PLATFORM_SETTINGS = "platformSettings"
GUEST_SETTINGS_DOC = "guestSettings"

SERVICES = "services"
SCHEDULES = "schedules"
RESCHEDULES = "reschedules"

# Roles
ROLE_ADMIN = "admin"
ROLE_LEGEND = "legend"
ROLE_LEGEND_APPLICANT = "legend_applicant"
ROLE_NEW_ARTIST = "new_artist"
ROLE_GUEST = "guest"

# Collaboration status
PENDING_REVIEW = "pending_review"
PENDING_AGREEMENT = "pending_agreement"
PENDING_PAYMENT = "pending_payment"
AWAITING_CONTRACT = "awaiting_contract"
SCHEDULING = "scheduling"
SCHEDULED = "scheduled"
IN_PROGRESS = "in_progress"
POST_PRODUCTION = "post_production"
COMPLETED = "completed"
DECLINED = "declined"

ACTIVE_COLLABORATION_STATUSES = [
    PENDING_AGREEMENT,
    PENDING_PAYMENT,
    SCHEDULING,
    SCHEDULED,
    IN_PROGRESS,
]

COLLABORATION_TYPE_PODCAST = "podcast"
COLLABORATION_TYPE_GUEST = "guest_appearance"

ESCROW_HELD = "held"
ESCROW_RELEASED = "released"

# Wishlist status
WISHLIST_PENDING = "pending"
WISHLIST_CONTACTED = "contacted"
WISHLIST_MATCHED = "matched"

# Invite status
INVITE_SENT = "sent"
INVITE_ACCEPTED = "accepted"
INVITE_EXPIRED = "expired"

# Match status
MATCH_ACTIVE = "active"
MATCH_COLLABORATION_STARTED = "collaboration_started"
MATCH_DISMISSED_BY_GUEST = "dismissed_by_guest"
MATCH_DISMISSED_BY_PODCAST = "dismissed_by_podcast"
OPEN_MATCH_STATUSES = [MATCH_ACTIVE, MATCH_COLLABORATION_STARTED]
MATCH_EXPIRATION_DAYS = 60

# Schedule proposals
PROPOSAL_PROPOSED = "proposed"
PROPOSAL_ACCEPTED = "accepted"
PROPOSAL_DECLINED = "declined"
PROPOSAL_SUPERSEDED = "superseded"
RESCHEDULE_PENDING = "pending"
DEFAULT_MAX_RESCHEDULES = 2
DEFAULT_SLOT_DURATION = "60 minutes"

PAYMENT_DIRECTIONS = ["free", "guest_pays_podcast", "podcast_pays_guest"]

PODCAST_SERVICE_TYPES = ["guest_spot", "cross_promotion", "ad_read", "other"]

PODCAST_UPDATABLE_FIELDS = [
    "title",
    "description",
    "coverImageUrl",
    "categories",
    "avgListeners",
    "rssFeedUrl",
    "websiteUrl",
    "platformLinks",
]

REPORT_REASONS = [
    "inappropriate_content",
    "copyright_violation",
    "spam",
    "misleading",
    "other",
]

RECORDING_PLATFORMS = {
    "zoom.us": "zoom",
    "riverside.fm": "riverside",
    "streamyard.com": "streamyard",
    "zencastr.com": "zencastr",
}

MIN_PITCH_MESSAGE_LENGTH = 50
MIN_LEGEND_BIO_LENGTH = 100
RECENT_EPISODE_LIMIT = 5
RECOMMENDATION_LIMIT = 20
MIN_RECOMMENDATION_SCORE = 30
DEFAULT_NOTIFICATION_LIMIT = 20

DEFAULT_GUEST_SETTINGS = {
    "minGuestRate": 0,
    "maxGuestRate": 10000,
    "inviteExpirationDays": 30,
    "autoMatchingEnabled": True,
    "minimumMatchScore": 70,
    "verificationRequired": False,
    "autoVerifyThreshold": 5,
    "guestFeatureEnabled": True,
    "publicGuestDiscoveryEnabled": True,
}

TRANSFER_CURRENCY = "NGN"
SUBACCOUNT_SPLIT_TYPE = "percentage"

# Fields a user may set on their own guest profile
GUEST_PROFILE_FIELDS = [
    "displayName",
    "profileImageUrl",
    "guestBio",
    "guestTopics",
    "guestRate",
    "guestRateType",
    "socialLinks",
    "websiteUrl",
    "mediaKitUrl",
    "sampleMediaUrls",
    "availability",
]
