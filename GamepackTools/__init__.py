import hashlib
import logging
import os
import re
import struct
import time
import zipfile
from io import BytesIO

import pycurl
import yaml

import MavenTools

"""
GamepackTools module for pulling the oldschool jav_config, downloading the gamepack jar it points at
and saving it to disk with the timestamps of the original build.

"""

# set logging level for the module
log_level = logging.INFO

# Set up logging stream
sh = logging.StreamHandler()
sh.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s'))
logger = logging.getLogger('GamepackTools')
logger.addHandler(sh)
logger.setLevel(log_level)

__all__ = ['GamepackConfig', 'GamepackError', 'GamePack', 'parse_jav_config', 'parse_revision',
           'derive_download_url', 'sha256_hex', 'http_get']

JAV_CONFIG_URL = 'https://oldschool.config.runescape.com/jav_config.ws'
REVISION_KEY = 'param_25'

# msg=lang0=English and param=25=229 would otherwise all collapse onto the keys "msg" and "param"
_RESERVED_KEYS = re.compile(r'^(msg|param)=', re.MULTILINE)

# zip "extended timestamp" extra field
_EXTENDED_TIMESTAMP = 0x5455


class GamepackError(RuntimeError):
    pass


class GamepackConfig(object):

    def __init__(self, config_file=None):
        """
        Creates the downloader settings, optionally overridden from a yaml file.
        With no file named, gamepack-config.yml in the working directory is used if present.
        :param config_file:
        """
        self.jav_config_url = JAV_CONFIG_URL
        self.output_root = '/out'
        self.maven_repository = os.path.join(os.path.expanduser('~'), '.m2', 'repository')
        self.log_level = None
        self.config_file = None
        self.config = {}
        if config_file is None:
            if os.path.exists('gamepack-config.yml'):
                self.load_config('gamepack-config.yml')
        else:
            self.load_config(config_file)

    def load_config(self, config_file):
        self.config_file = config_file
        logger.debug("Loading config file %s" % config_file)
        try:
            f = open(config_file, 'r')
        except (OSError, IOError):
            raise GamepackError("Config file (%s) not found" % config_file)
        with f:
            try:
                self.config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise GamepackError("Config file (%s) is not valid yaml: %s" % (config_file, e))
        self.process_config()

    def _string_setting(self, key):
        value = self.config[key]
        if not isinstance(value, str) or not value:
            raise GamepackError("%s in config should be a non-empty string, got %r" % (key, value))
        return value

    def process_config(self):
        if not isinstance(self.config, dict):
            raise GamepackError("Config file (%s) should be a mapping of settings" % self.config_file)
        if 'jav_config_url' in self.config:
            self.jav_config_url = self._string_setting('jav_config_url')
        if 'output_root' in self.config:
            self.output_root = self._string_setting('output_root')
        if 'maven_repository' in self.config:
            self.maven_repository = os.path.expanduser(self._string_setting('maven_repository'))
        if 'log_level' in self.config:
            level = self.config['log_level']
            if isinstance(level, bool) or not isinstance(level, (int, str)):
                raise GamepackError("Unknown log_level in config: %r" % level)
            if isinstance(level, str):
                level = level.upper()
                if not isinstance(logging.getLevelName(level), int):
                    raise GamepackError("Unknown log_level in config: %s" % self.config['log_level'])
            self.log_level = level
            logger.setLevel(self.log_level)
            logging.getLogger('MavenTools').setLevel(self.log_level)

    def default_output(self, revision, extension):
        return os.path.join(self.output_root, 'net', 'runelite', 'rs', 'vanilla', str(revision),
                            MavenTools.artifact_file_name(revision, extension))


def parse_jav_config(text):
    """
    Parses the jav_config body into an ordered dict of key -> value
    :param str text: raw jav_config.ws body
    :return dict:
    """
    properties = {}
    for line in _RESERVED_KEYS.sub(r'\1_', text).splitlines():
        line = line.strip()
        if not line or line[0] in '#!':
            continue
        match = re.search(r'[=:]', line)
        if match is None:
            properties[line] = ''
            continue
        key = line[:match.start()].strip()
        properties[key] = line[match.end():].strip()
    if not properties:
        raise GamepackError("JavConfig properties are empty!")
    return properties


def parse_revision(jav_config):
    value = jav_config.get(REVISION_KEY)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise GamepackError("JavConfig %s is not a revision: %r" % (REVISION_KEY, value))


def derive_download_url(jav_config):
    if 'codebase' not in jav_config or 'initial_jar' not in jav_config:
        raise GamepackError("JavConfig is missing codebase/initial_jar")
    return jav_config['codebase'] + jav_config['initial_jar']


def sha256_hex(data):
    return hashlib.sha256(data).hexdigest()


def http_get(url):
    """
    Blocking GET of url into memory. No timeout and no size limit.
    :param str url:
    :return bytes: response body
    """
    buf = BytesIO()
    down = pycurl.Curl()
    down.setopt(pycurl.URL, url)
    down.setopt(pycurl.FOLLOWLOCATION, 1)
    down.setopt(pycurl.MAXREDIRS, 3)
    down.setopt(pycurl.NOSIGNAL, 1)
    down.setopt(pycurl.WRITEDATA, buf)
    try:
        down.perform()
        status = down.getinfo(pycurl.RESPONSE_CODE)
    except pycurl.error as e:
        raise GamepackError("Failed to download: %s\n%s" % (url, e))
    finally:
        down.close()
    if status >= 400:
        raise GamepackError("Failed to download: %s (HTTP %s)" % (url, status))
    return buf.getvalue()


def _entry_last_modified(info):
    """
    Last modified time of a zip entry as epoch seconds.
    Prefers the extended timestamp extra field, falls back to the local DOS time.
    """
    extra = info.extra
    pos = 0
    while pos + 4 <= len(extra):
        header_id, size = struct.unpack('<HH', extra[pos:pos + 4])
        data = extra[pos + 4:pos + 4 + size]
        if header_id == _EXTENDED_TIMESTAMP and len(data) >= 5 and data[0] & 1:
            return struct.unpack('<i', data[1:5])[0]
        pos += 4 + size
    return time.mktime(info.date_time + (0, 0, -1))


class GamePack(object):
    """
    The downloaded gamepack and what the jav_config says about it.
    Built once through GamePack.load and not changed afterwards.

    """

    def __init__(self, jav_config_url, jav_config, jar):
        self._jav_config_url = jav_config_url
        self._jav_config = dict(jav_config)
        self._revision = parse_revision(self._jav_config)
        self._jar_download = derive_download_url(self._jav_config)
        self._jar = bytes(jar)
        self._sha256 = sha256_hex(self._jar)

    @classmethod
    def load(cls, settings=None):
        """
        Fetch the jav_config, then the gamepack it names
        :param GamepackConfig settings:
        :return GamePack:
        """
        settings = settings or GamepackConfig()
        logger.debug("Fetching jav_config from %s" % settings.jav_config_url)
        text = http_get(settings.jav_config_url).decode('utf-8', 'replace')
        jav_config = parse_jav_config(text)
        jar_download = derive_download_url(jav_config)
        parse_revision(jav_config)

        logger.debug("Fetching gamepack from %s" % jar_download)
        jar = http_get(jar_download)
        if not jar:
            raise GamepackError("Failed to retrieve gamepack from %s" % jar_download)

        gamepack = cls(settings.jav_config_url, jav_config, jar)
        logger.info("Revision: %s" % gamepack.revision)
        logger.info("Sha256: %s" % gamepack.sha256)
        logger.info("Size: %s bytes" % gamepack.size)
        return gamepack

    @property
    def jav_config_url(self):
        return self._jav_config_url

    @property
    def jav_config(self):
        return dict(self._jav_config)

    @property
    def revision(self):
        return self._revision

    @property
    def jar_download(self):
        return self._jar_download

    @property
    def jar(self):
        return self._jar

    @property
    def size(self):
        return len(self._jar)

    @property
    def sha256(self):
        return self._sha256

    def validate(self):
        if self.revision <= 0 or self.size <= 0 or not self.jar_download.endswith('.jar') or not self.sha256:
            raise GamepackError("Failed to load gamepack!")

    def save_jar(self, output_file, vanilla_last_modified=False):
        """
        Write the gamepack to output_file, creating parent directories as needed.
        :param str output_file: must end with .jar
        :param bool vanilla_last_modified: stamp the file with the build time of initial_class
        :return bool status:
        """
        if not self._jar or not output_file.endswith('.jar'):
            logger.error("Cannot save gamepack because jar is empty" if not self._jar
                         else "Output file should end with .jar")
            return False
        try:
            output_dir = os.path.dirname(os.path.abspath(output_file))
            if not os.path.exists(output_dir):
                os.makedirs(output_dir)
            with open(output_file, 'wb') as f:
                f.write(self._jar)
            if vanilla_last_modified:
                initial_class = self._jav_config.get('initial_class')
                with zipfile.ZipFile(output_file) as jar_file:
                    try:
                        info = jar_file.getinfo(initial_class)
                    except KeyError:
                        info = None
                if info is None:
                    logger.error("Entry %s not found in gamepack, keeping current timestamps" % initial_class)
                else:
                    last_modified = _entry_last_modified(info)
                    os.utime(output_file, (last_modified, last_modified))
        except (OSError, zipfile.BadZipFile):
            logger.exception("Failed to save gamepack to %s" % output_file)
            return False
        logger.info("Vanilla gamepack jar: %s" % os.path.abspath(output_file))
        return True

    def generate_pom(self, group_id, artifact_id, version, output_file):
        return MavenTools.generate_pom(group_id, artifact_id, version, output_file)

    def publish_to_maven_local(self, repository=None):
        return MavenTools.publish_to_maven_local(self, repository)

    def __str__(self):
        return '\n'.join(['jav_config=%s' % self.jav_config_url,
                          'revision=%s' % self.revision,
                          'sha256=%s' % self.sha256,
                          'size=%s' % self.size,
                          'jar_download=%s' % self.jar_download])
