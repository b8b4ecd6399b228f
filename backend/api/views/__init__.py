from api.views.leaderboard_handlers import leaderboard as leaderboard
from api.views.leaderboard_handlers import user_ranking as user_ranking
from api.views.profile_handlers import get_profile as get_profile
from api.views.profile_handlers import update_profile as update_profile
from api.views.record_handlers import delete_records as delete_records
from api.views.record_handlers import game_stats as game_stats
from api.views.record_handlers import submit_record as submit_record
from api.views.record_handlers import todays_records as todays_records
from api.views.social_handlers import follow as follow
from api.views.social_handlers import list_followers as list_followers
from api.views.social_handlers import list_following as list_following
from api.views.social_handlers import unfollow as unfollow
