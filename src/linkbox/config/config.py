import os
import platform

from configobj import ConfigObj, ConfigObjError, Section
from validate import Validator

# The default extension for configuration files
config_extension = '.cfg'

# The name of the packaged connection settings
settings_name = 'linkbox'


def config_flavor(name, flavor=None):
    return name if not flavor else name + '.' + flavor


def config_filename(name, directory):
    """
    Determines the location of a config file in the given directory.
    """
    return os.path.join(directory, name + config_extension)


def load_config_file_base(file, must_exist=True, schema=False):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :param schema:      when True, the file is parsed as a validation schema (configspec)
    :return: The ConfigObj instance for the file.
    """
    if not must_exist and not os.path.exists(file):
        return ConfigObj()
    try:
        if schema:
            return ConfigObj(file, file_error=True, _inspec=True)
        return ConfigObj(file, interpolation='Template', file_error=True)
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None, schema=False) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    file = config_filename(config_flavor(name, subpart), directory)
    return load_config_file_base(file, False, schema)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_config(name, directory):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones overriding earlier ones:
        - the default specialization
        - the platform specialization
        - the user override (~/name.cfg)
        - the base configuration
        The merged configuration is then validated against the "schema" specialization, which also
        fills in default values and converts values to their declared types.
    :directory: the location of the configuration files
    :return: the validated ConfigObj
    """
    config = ConfigObj(interpolation='Template')
    config.merge(config_flavor_file(name, directory, 'default'))
    config.merge(config_flavor_file(name, directory, os_name()))
    config.merge(load_config_file_base(os.path.expanduser('~/' + name + config_extension), must_exist=False))
    config.merge(config_flavor_file(name, directory))

    config.configspec = config_flavor_file(name, directory, 'schema', schema=True)
    result = config.validate(Validator())
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" % (name, result))
    return config


def load_settings(directory=None):
    """
    Loads the connection settings: [serial] line defaults, [tcp] and [udp] options and the [read_loop] tuning.
    :param directory: where the linkbox config files are found. Defaults to this package.
    """
    return load_config(settings_name, directory or os.path.dirname(__file__))


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the sections to resolve
    :return: The configuration section identified by the path, or None.
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return None
    return conf


def apply_conf(conf: Section, target):
    """
    Applies the values in a configuration section to the attributes of a target object that
    have the same name. Values without a matching attribute are ignored.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)


def apply_conf_path(conf: Section, name_parts, target):
    conf = fetch_conf_path(conf, name_parts)
    if conf:
        apply_conf(conf, target)


def reconstruct_name(path, package_depth):
    """
    Reconstructs a dotted module name from a module's file path.
    :param path The filename of a module file
    :param package_depth The number of packages the module is nested in.

    >>> reconstruct_name('C:/drive/dir/package1/package2/module.py', 2)
    'package1.package2.module'
    """
    parts = path.replace('\\', '/').split('/')
    parts[-1] = os.path.splitext(parts[-1])[0]
    return '.'.join(parts[-package_depth - 1:])


def fq_module_name(module):
    """
    Retrieves the fully qualified name of the module. When the module is run as __main__, the
    name is reconstructed from the package and the file name.
    """
    if not module.__package__:
        raise ConfigObjError('module has no package defined')
    return module.__name__ if module.__name__ != '__main__' else \
        reconstruct_name(module.__file__, len(module.__package__.split('.')))


def configure_module(module, config_name=None):
    """
    Applies configuration to the globals of the given module.
    The configuration files are found in the module's directory and named config_name,
    which defaults to the module's file name. The values are read from the nested section
    matching the module's dotted name, e.g. [linkbox] [[connector]] [[[manager_test]]]
    """
    fqname = fq_module_name(module)
    if not config_name:
        config_name = fqname.split('.')[-1]
    conf = load_config(config_name, os.path.dirname(module.__file__))
    apply_conf_path(conf, fqname.split('.'), module)
