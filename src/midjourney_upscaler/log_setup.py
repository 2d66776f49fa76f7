# Global variables accessed by loguru-config (see "resources/log-config.yaml").
# Commands set these before calling "LoguruConfig.load".

log_level = "DEBUG"
log_filename = "mj-upscale.log"
APP_LOGGING_NAME = "mjup"
