#!/usr/bin/env python
import argparse
import logging
import sys

from GamepackTools import *

log_level = logging.INFO

sh = logging.StreamHandler()
sh.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s'))
logger = logging.getLogger('download_gamepack')
logger.addHandler(sh)
logger.setLevel(log_level)


def build_parser(gamepack, settings):
    parser = argparse.ArgumentParser(prog='download-gamepack',
                                     description='Download the oldschool gamepack and publish it as a maven artifact.')
    parser.add_argument('--config', metavar='configFile', help='Downloader settings (yaml).')
    parser.add_argument('--javconfig', action='store_true', help='The jav config url.')
    parser.add_argument('--gamepack', action='store_true', help='The gamepack summary.')
    parser.add_argument('--properties', action='store_true', help='The jav config properties.')
    parser.add_argument('--revision', action='store_true', help='The gamepack revision.')
    parser.add_argument('--size', action='store_true', help='The gamepack size.')
    parser.add_argument('--sha256', action='store_true', help='The gamepack sha256 hash.')
    parser.add_argument('--jardownload', action='store_true', help='The gamepack jar download url.')
    parser.add_argument('--save', nargs='?', metavar='outputFile', const=settings.default_output(gamepack.revision, 'jar'),
                        help='Save the gamepack to desired output (default: %(const)s)')
    parser.add_argument('--pom', nargs='?', metavar='outputFile', const=settings.default_output(gamepack.revision, 'pom'),
                        help='Generate pom to desired output (default: %(const)s)')
    parser.add_argument('--groupId', dest='group_id', metavar='groupId', help='Group ID of the artifact, requires --pom')
    parser.add_argument('--artifactId', dest='artifact_id', metavar='artifactId',
                        help='Artifact ID of the artifact, requires --pom')
    parser.add_argument('--version', dest='version', metavar='version', help='Version of the artifact, requires --pom')
    parser.add_argument('--publish', action='store_true',
                        help='Publish artifact to maven local repository (%s/net/runelite/rs/vanilla/<revision>/).' %
                             settings.maven_repository.rstrip('/').replace('%', '%%'))
    return parser


def load_settings(argv):
    """
    Picks --config out of argv ahead of the full parse, the full parser needs the revision for its defaults
    :param argv:
    :return GamepackConfig:
    """
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument('--config')
    known, _ = pre.parse_known_args(argv)
    return GamepackConfig(known.config)


def run(options, gamepack, settings):
    if options.javconfig:
        print(gamepack.jav_config_url)
    if options.gamepack:
        print(gamepack)
    if options.properties:
        for key, value in gamepack.jav_config.items():
            print('%s=%s' % (key, value))
    if options.revision:
        print(gamepack.revision)
    if options.size:
        print(gamepack.size)
    if options.sha256:
        print(gamepack.sha256)
    if options.jardownload:
        print(gamepack.jar_download)
    if options.save:
        gamepack.save_jar(options.save, True)
    if options.pom:
        gamepack.generate_pom(options.group_id, options.artifact_id, options.version, options.pom)
    if options.publish:
        gamepack.publish_to_maven_local(settings.maven_repository)


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        logger.error("No program argument specified!")
        sys.exit(0)

    logger.info("Args: %s" % argv)
    try:
        settings = load_settings(argv)
        if settings.log_level:
            logger.setLevel(settings.log_level)
        gamepack = GamePack.load(settings)
        gamepack.validate()
    except GamepackError as e:
        logger.fatal("Failed to retrieve gamepack: %s" % e)
        sys.exit(1)

    parser = build_parser(gamepack, settings)
    options = parser.parse_args(argv)
    if options.pom and not (options.group_id and options.artifact_id and options.version):
        parser.error('--groupId, --artifactId and --version are required with --pom')
    run(options, gamepack, settings)


if __name__ == '__main__':
    main()
