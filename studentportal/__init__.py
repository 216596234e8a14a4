import pymysql

# Production runs on MySQL through PyMySQL
pymysql.install_as_MySQLdb()
