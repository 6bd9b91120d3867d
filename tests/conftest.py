import io
import zipfile

import pytest

import GamepackTools

JAV_CONFIG_URL = 'https://config.example/jav_config.ws'
CODEBASE = 'http://gamepack.example/'
BUILD_TIME = (2025, 3, 4, 12, 30, 10)

JAV_CONFIG = ('title=Old School RuneScape\n'
              'codebase=%s\n'
              'initial_jar=gamepack_1234.jar\n'
              'initial_class=client.class\n'
              'msg=lang0=English\n'
              'param=25=229\n'
              'param=3=true\n' % CODEBASE)


def make_jar(entry='client.class', date_time=BUILD_TIME, extra=b''):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as zf:
        info = zipfile.ZipInfo(entry, date_time=date_time)
        info.extra = extra
        zf.writestr(info, b'\xca\xfe\xba\xbe')
        zf.writestr(zipfile.ZipInfo('META-INF/MANIFEST.MF', date_time=date_time), b'Manifest-Version: 1.0\n')
    return buf.getvalue()


@pytest.fixture
def jar():
    return make_jar()


@pytest.fixture
def settings(tmp_path):
    config_file = tmp_path / 'gamepack-config.yml'
    config_file.write_text('jav_config_url: %s\n'
                           'output_root: %s\n'
                           'maven_repository: %s\n' % (JAV_CONFIG_URL, tmp_path / 'out', tmp_path / 'm2'))
    return GamepackTools.GamepackConfig(str(config_file))


@pytest.fixture
def remote(monkeypatch, jar):
    """Serves the jav_config and gamepack in place of the network."""
    responses = {JAV_CONFIG_URL: JAV_CONFIG.encode(), CODEBASE + 'gamepack_1234.jar': jar}
    requested = []

    def fake_get(url):
        requested.append(url)
        if url not in responses:
            raise GamepackTools.GamepackError('Failed to download: %s' % url)
        return responses[url]

    monkeypatch.setattr(GamepackTools, 'http_get', fake_get)
    fake_get.responses = responses
    fake_get.requested = requested
    return fake_get


@pytest.fixture
def gamepack(remote, settings):
    return GamepackTools.GamePack.load(settings)
