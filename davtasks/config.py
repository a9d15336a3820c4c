"""
Reading connection parameters from a config file.

The config file is JSON (or YAML, if pyyaml is installed) holding a
dict of sections, each section a dict of settings.  A section may
inherit the settings of another one:

    {
        "default": {
            "caldav_url": "https://dav.example.com/",
            "caldav_user": "tobixen",
            "caldav_pass": "hunter2"
        },
        "work": {
            "inherits": "default",
            "calendar_name": "Work tasks"
        }
    }
"""
import json
import logging
import os

log = logging.getLogger(__name__)

## keys in the config section -> DAVClient parameters
PARAMETER_NAMES = {
    "caldav_url": "url",
    "caldav_user": "username",
    "caldav_username": "username",
    "caldav_pass": "password",
    "caldav_password": "password",
    "caldav_timeout": "timeout",
    "ssl_verify_cert": "ssl_verify_cert",
    "calendar_name": "calendar_name",
}


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def connection_params(section):
    """
    Picks the DAVClient parameters from a config section.  Unknown keys
    and empty values are ignored.  Returns an empty dict if no URL is
    given.
    """
    conn_params = {}
    for key in section:
        if key in PARAMETER_NAMES and section[key] not in (None, ""):
            conn_params[PARAMETER_NAMES[key]] = section[key]
    if "url" not in conn_params:
        return {}
    return conn_params


def default_config_files():
    cfgdir = f"{os.environ.get('HOME', '/')}/.config"
    return (
        f"{cfgdir}/davtasks/config.json",
        f"{cfgdir}/davtasks/config.yaml",
        f"{cfgdir}/davtasks.conf",
        "/etc/davtasks.conf",
    )


def read_config(fn):
    if not fn:
        for config_file in default_config_files():
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is external module,
            ## and not included in the requirements as for now.
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.SafeLoader)
                except yaml.YAMLError:
                    log.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                log.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )

    except FileNotFoundError:
        log.debug(f"no config file at {fn}")
    except ValueError:
        log.error(f"error in config file {fn}.  It will be ignored", exc_info=True)
    return {}
