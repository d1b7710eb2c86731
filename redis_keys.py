REDIS_USER_KEY = "user:{user_id}" # user hash
REDIS_USER_ROLL_INDEX = "user:roll:{roll_no}" # roll number -> user id
REDIS_USER_EMAIL_INDEX = "user:email:{email}" # lowercased email -> user id
REDIS_RECORD_KEY = "{kind}:{record_id}" # record hash (attendance, calendar, exam, syllabus)
REDIS_RECORD_INDEX = "{kind}:index" # sorted set of record ids scored by timestamp
REDIS_OWNER_INDEX = "{kind}:owner:{owner_id}" # per-user sorted set of record ids
REDIS_CHAT_HISTORY = "chat:history:{room}" # capped list of JSON chat messages, newest first

# **Record hash fields**
# - every value is JSON encoded so booleans, numbers and lists survive the round trip
# - `id` and `created_at` are always present
# - sort scores are UTC epoch seconds of the record's primary date
