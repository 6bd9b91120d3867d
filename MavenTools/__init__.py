import logging
import os
import time
from string import Template
from xml.sax.saxutils import escape

"""
MavenTools module for templating pom files and laying artifacts out in the local maven repository

"""

# set logging level for the module
log_level = logging.INFO

# Set up logging stream
sh = logging.StreamHandler()
sh.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s'))
logger = logging.getLogger('MavenTools')
logger.addHandler(sh)
logger.setLevel(log_level)

__all__ = ['PomTemplate', 'generate_pom', 'maven_local_dir', 'artifact_file_name', 'publish_to_maven_local']

MODEL_VERSION = '4.0.0'
GROUP_ID = 'net.runelite.rs'
ARTIFACT_ID = 'vanilla'

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')


class PomTemplate:
    """
    Defines a basic string Template for a pom carrying only the artifact coordinates
    :param Template template: Specifies the file location to use for the template
    """
    def __init__(self, template=os.path.join(TEMPLATE_DIR, 'pom.template')):
        with open(template) as f:
            self.template = Template(f.read())

    def substitute(self, group_id=None, artifact_id=None, version=None):
        t = self.template.safe_substitute(model_version=MODEL_VERSION,
                                          group_id=escape(group_id or ''),
                                          artifact_id=escape(artifact_id or ''),
                                          version=escape(version or ''))
        return t


def artifact_file_name(revision, extension):
    return '%s-%s.%s' % (ARTIFACT_ID, revision, extension)


def maven_local_dir(revision, repository=None):
    """
    Directory of the vanilla artifact for a revision inside the local repository
    :param revision:
    :param repository: repository root, defaults to ~/.m2/repository
    :return str:
    """
    if repository is None:
        repository = os.path.join(os.path.expanduser('~'), '.m2', 'repository')
    return os.path.join(repository, *(GROUP_ID.split('.') + [ARTIFACT_ID, str(revision)]))


def generate_pom(group_id, artifact_id, version, output_file):
    """
    Generate pom used for vanilla gamepack artifact hosting

    :param group_id:
    :param artifact_id:
    :param version:
    :param output_file: must end with .pom
    :return bool status:
    """
    if not output_file.endswith('.pom'):
        logger.error("Output file should end with .pom")
        return False
    try:
        output_dir = os.path.dirname(os.path.abspath(output_file))
        if not os.path.exists(output_dir):
            os.makedirs(output_dir)
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(PomTemplate().substitute(group_id=group_id, artifact_id=artifact_id, version=version))
    except OSError:
        logger.exception("Error generating POM file")
        return False
    logger.info("Pom file generated: %s groupId: %s artifactId: %s, version: %s" %
                (os.path.abspath(output_file), group_id, artifact_id, version))
    return True


def publish_to_maven_local(gamepack, repository=None):
    """
    Save the gamepack and its pom as net.runelite.rs:vanilla:<revision> in the local repository.
    :param GamePack gamepack:
    :param repository: repository root, defaults to ~/.m2/repository
    :return bool status: True when both the jar and the pom were written
    """
    started = time.time()
    status = False
    revision = gamepack.revision
    output_dir = maven_local_dir(revision, repository)
    try:
        if not os.path.exists(output_dir):
            os.makedirs(output_dir)
    except OSError:
        logger.exception("Publish to local maven failed")
    else:
        jar_out = os.path.join(output_dir, artifact_file_name(revision, 'jar'))
        pom_out = os.path.join(output_dir, artifact_file_name(revision, 'pom'))
        saved = gamepack.save_jar(jar_out, True)
        status = generate_pom(GROUP_ID, ARTIFACT_ID, str(revision), pom_out) and saved
    logger.info("Took: %.3f s" % (time.time() - started))
    return status
