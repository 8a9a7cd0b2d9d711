# Core models, configuration, errors, logging and the document store
